# -----------------------------------------------------------------------------
# DOCKER PROVIDER
# -----------------------------------------------------------------------------
# Responsibility: One place that knows how to reach the Docker engine,
# both through the SDK (inspect, tag, run) and through the CLI (BuildKit
# builds with cache mounts, which the SDK's legacy build API cannot do).
#
# This is part of the Infrastructure layer - the Foundry, Auditor and
# Launcher receive a client from here and never open their own.
# -----------------------------------------------------------------------------

import os
import shutil

import docker
from docker import DockerClient
from docker.errors import DockerException
from rich.console import Console
from rich.panel import Panel

console = Console()


class DockerProviderError(Exception):
    """Raised when the Docker engine or CLI cannot be reached."""

    pass


class DockerProvider:
    """
    Lazily connected Docker SDK client plus CLI environment.

    Honours DOCKER_HOST for both the SDK and the ``docker`` CLI.
    """

    def __init__(self, docker_host: str | None = None, client: DockerClient | None = None) -> None:
        """
        Initialize the Docker provider.

        Args:
            docker_host: Engine address. Defaults to the DOCKER_HOST env var.
            client: Pre-built SDK client (tests inject a mock here).
        """
        self._docker_host = docker_host or os.getenv("DOCKER_HOST")
        self._client: DockerClient | None = client

    def _connect(self) -> DockerClient:
        try:
            if self._docker_host:
                client = docker.DockerClient(base_url=self._docker_host)
            else:
                client = docker.from_env()
            client.ping()
        except DockerException as e:
            console.print(
                Panel(
                    "[bold red]CRITICAL: Docker Engine Unavailable[/bold red]\n\n"
                    f"Host: {self._docker_host or 'local socket'}\n"
                    f"Error: {e}",
                    title="BUILD HALT",
                    border_style="red",
                )
            )
            raise DockerProviderError(f"Docker Engine is not available: {e}") from e

        where = self._docker_host or "local Docker"
        console.print(f"[green][DOCKER] Connected to {where}[/green]")
        return client

    def get_client(self) -> DockerClient:
        """
        Get a live SDK client, reconnecting once if the connection dropped.

        Raises:
            DockerProviderError: If the engine cannot be reached.
        """
        if self._client is None:
            self._client = self._connect()
            return self._client

        try:
            self._client.ping()
            return self._client
        except DockerException as e:
            console.print(f"[yellow][DOCKER] Connection lost ({e}), reconnecting...[/yellow]")
            self._client = self._connect()
            return self._client

    def is_connected(self) -> bool:
        """Check if Docker is currently reachable."""
        if self._client is None:
            return False
        try:
            self._client.ping()
            return True
        except DockerException:
            return False

    def cli_path(self) -> str:
        """
        Locate the docker CLI.

        Raises:
            DockerProviderError: If ``docker`` is not on PATH.
        """
        path = shutil.which("docker")
        if path is None:
            raise DockerProviderError("docker CLI not found on PATH")
        return path

    def cli_env(self) -> dict[str, str]:
        """Environment for CLI invocations, with BuildKit forced on."""
        env = dict(os.environ)
        env["DOCKER_BUILDKIT"] = "1"
        if self._docker_host:
            env["DOCKER_HOST"] = self._docker_host
        return env
