"""kiln - style and container build tooling for the htmx gallery."""

__version__ = "0.1.0"
