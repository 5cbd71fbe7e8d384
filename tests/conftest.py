"""
Pytest configuration and fixtures for kiln tests.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Repo root on the path so tests run without an install
sys.path.insert(0, str(Path(__file__).parent.parent))

# Tests never read the developer's configuration
os.environ.pop("KILN_CONFIG", None)
os.environ.pop("KILN_BUILDS_DIR", None)


INDEX_HTML = """<!DOCTYPE html>
<html>
  <body class="font-poppins bg-gray-100">
    <header class="text-yellow-header drop-shadow-header text-4xl">Gallery</header>
    <main class="grid grid-cols-1 md:grid-cols-3 gap-4 px-4">
      <div hx-get="/items" hx-trigger="load"></div>
    </main>
  </body>
</html>
"""

MAIN_RS = """use axum::Router;

fn card(title: &str) -> Markup {
    html! {
        div class="rounded-lg shadow-md p-4 hover:bg-gray-200" { (title) }
    }
}
"""


@pytest.fixture
def content_tree(tmp_path):
    """A gallery-shaped project: one page template and Rust views."""
    (tmp_path / "index.html").write_text(INDEX_HTML)
    src = tmp_path / "src"
    (src / "static").mkdir(parents=True)
    (src / "main.rs").write_text(MAIN_RS)
    return tmp_path


@pytest.fixture
def build_context(tmp_path):
    """A build context holding a Cargo manifest, lock file and source."""
    context = tmp_path / "context"
    (context / "src" / "static").mkdir(parents=True)
    (context / "Cargo.toml").write_text('[package]\nname = "htmx-gallery"\nversion = "0.1.0"\n')
    (context / "Cargo.lock").write_text("version = 3\n")
    (context / "src" / "main.rs").write_text(MAIN_RS)
    return context


@pytest.fixture
def mock_docker_client():
    """Mock Docker SDK client: a non-root image with a clean audit probe."""
    client = MagicMock()
    client.ping.return_value = True

    image = MagicMock()
    image.attrs = {"Config": {"User": "app"}}
    image.tag.return_value = True
    client.images.get.return_value = image

    client.containers.run.return_value = b""

    return client
