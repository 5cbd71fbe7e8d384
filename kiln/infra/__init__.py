# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Contains low-level infrastructure wrappers:
# - DockerProvider: Docker SDK client and BuildKit CLI environment
# -----------------------------------------------------------------------------

from .docker_client import DockerProvider, DockerProviderError

__all__ = ["DockerProvider", "DockerProviderError"]
