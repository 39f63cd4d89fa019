"""Root test fixtures.

Environment overrides are set BEFORE any gateway imports so that the
configuration module (and the module-level app) pick up test values.
"""

import os
import tempfile

# ---------------------------------------------------------------------------
# Environment overrides: MUST be set before importing anything from `gateway`
# ---------------------------------------------------------------------------
MASTER_KEY = "test-master-key-not-for-production"
STATUS_PAGE_KEY = "test-status-page-key-0123456789"

os.environ["MASTER_API_KEY"] = MASTER_KEY
os.environ["STATUS_PAGE_API_KEY"] = STATUS_PAGE_KEY
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="gateway-test-")
os.environ["DEBUG"] = "1"

import contextlib
import json
from pathlib import Path

import httpx
import pytest

from gateway.config import Settings
from gateway.main import create_app


def write_handler(routes_dir: Path, slug: str, source: str, method: str = "GET") -> None:
    """Drop a handler module and its definition into *routes_dir*."""
    routes_dir.mkdir(parents=True, exist_ok=True)
    (routes_dir / f"{slug}.py").write_text(source, encoding="utf-8")
    definition = {"title": slug, "method": method, "path": f"/api/{slug}", "hidden": False}
    (routes_dir / f"{slug}.json").write_text(json.dumps(definition), encoding="utf-8")


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every store at a fresh temporary directory."""
    return Settings(DATA_DIR=str(tmp_path / "data"), STATIC_DIR=str(tmp_path / "public"))


@pytest.fixture
def add_handler(settings):
    """Return a function that writes a handler into the settings' routes dir."""

    def _add(slug, source, method="GET"):
        write_handler(settings.routes_dir, slug, source, method)

    return _add


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
async def test_client(app):
    """Async HTTP test client backed by the FastAPI ASGI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def master_headers():
    return {"Authorization": f"Bearer {MASTER_KEY}"}


@pytest.fixture
def status_page_headers():
    return {"Authorization": f"Bearer {STATUS_PAGE_KEY}"}


@pytest.fixture
async def user_headers(test_client):
    """Authorization headers carrying a freshly issued key."""
    resp = await test_client.get("/api/get-new-api-key")
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['api_key']}"}


@pytest.fixture
def make_client(settings):
    """Factory for clients on a freshly built app.

    Use it when the routes directory must be populated before the app loads
    handlers, or to override settings for one test.
    """

    @contextlib.asynccontextmanager
    async def _make(raise_app_exceptions=True, **overrides):
        app = create_app(settings.model_copy(update=overrides))
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            client.app = app
            yield client

    return _make
