"""Shared test fixtures for oceanctl.

Provides isolated config environments, output state management, a fake
API built on :class:`httpx.MockTransport`, and a CLI runner wired to it.
These fixtures are automatically discovered by pytest and available to all
test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest
import typer

from oceanctl.app import create_app
from oceanctl.client import ApiClient
from oceanctl.config import Config
from oceanctl.output import OutputFormat, OutputManager, reset_output, set_output

API_URL = "https://api.test/"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, and clears the environment
    variables oceanctl reads.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "OCEANCTL_CONFIG",
        "DIGITALOCEAN_ACCESS_TOKEN",
        "DIGITALOCEAN_API_URL",
        "NO_COLOR",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN-format, colourless OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


class FakeAPI:
    """Route table for :class:`httpx.MockTransport`.

    Handlers are registered per ``(method, path)``; every request is
    recorded in :attr:`requests`. Unrouted requests answer 404.
    """

    base_url = API_URL

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        body: Any = None,
        status: int = 200,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if body is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=body)

        self.routes[(method.upper(), "/" + path.lstrip("/"))] = handler

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        path = "/" + path.lstrip("/")
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body_of(request: httpx.Request) -> Any:
        """Decode the JSON body sent with *request*."""
        return json.loads(request.content) if request.content else None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"id": "not_found", "message": "not found"})
        return handler(request)

    def client(self, token: str = "test-token", trace: bool = False) -> ApiClient:
        return ApiClient(token, base_url=API_URL, trace=trace, transport=httpx.MockTransport(self))


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_app(isolated_config: Path, fake_api: FakeAPI) -> Callable[..., typer.Typer]:
    """Return a factory building the full application against *fake_api*.

    Keyword arguments:
        file_values: Flattened config file contents.
        environ: Environment seen by the resolver (defaults to a token only).
    """

    def _make(
        file_values: Optional[dict[str, Any]] = None,
        environ: Optional[dict[str, str]] = None,
    ) -> typer.Typer:
        if environ is None:
            environ = {"DIGITALOCEAN_ACCESS_TOKEN": "env-token"}
        config = Config(file_values, environ)

        def _factory(resolved: Config) -> ApiClient:
            token = resolved.get_string("access-token")
            return ApiClient(
                token,
                base_url=API_URL,
                trace=resolved.get_bool("trace"),
                transport=httpx.MockTransport(fake_api),
            )

        return create_app(config, client_factory=_factory)

    return _make
