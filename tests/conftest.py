"""Pytest configuration and shared fixtures"""
import tempfile
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest

from formrelay.api.app import create_app
from formrelay.config.settings import Settings
from formrelay.sheet import InMemorySheetBackend, create_sheet_app

SHEET_URL = "http://sheet.test/exec"


@pytest.fixture
def temp_project_dir() -> Generator[Path, None, None]:
    """Create a temporary project directory"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def valid_form() -> dict:
    """A submission that passes validation"""
    return {"name": "Jane", "email": "jane@x.com", "message": "hi"}


@pytest.fixture
def dev_settings() -> Settings:
    """Development settings pointing at the test sheet"""
    return Settings(google_script_url=SHEET_URL, environment="development")


@pytest.fixture
def prod_settings() -> Settings:
    """Production settings pointing at the test sheet"""
    return Settings(google_script_url=SHEET_URL, environment="production")


@pytest.fixture
def sheet_backend() -> InMemorySheetBackend:
    """Empty in-memory sheet"""
    return InMemorySheetBackend()


@pytest.fixture
def sheet_app(sheet_backend):
    """Sheet handler application backed by the in-memory sheet"""
    return create_sheet_app(sheet_backend)


@pytest.fixture
def make_proxy_app() -> Callable:
    """Factory for proxy applications whose outbound requests go to ``handler``"""

    def _make(settings: Settings, handler: Callable) -> object:
        return create_app(settings, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def json_destination() -> Callable:
    """Factory for destination handlers answering with a fixed JSON body"""

    def _make(body, status_code: int = 200, calls: list | None = None) -> Callable:
        def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(request)
            return httpx.Response(status_code, json=body)

        return handler

    return _make
