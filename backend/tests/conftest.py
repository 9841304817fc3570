import os
os.environ["APP_ENV"] = "test"

# THEN import anything else
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from flatapi.core.config import Settings, get_settings
from flatapi.main import create_app
from flatapi.routing.registry import RouteRegistry
from tests.sample_handlers import authenticate, register_sample_routes


@pytest.fixture()
def settings() -> Generator[Settings, None, None]:
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture()
def sample_registry() -> RouteRegistry:
    return register_sample_routes(RouteRegistry())


@pytest.fixture()
def make_client(settings: Settings) -> Generator[Callable[..., TestClient], None, None]:
    clients: list[TestClient] = []

    def _make(*, registry: RouteRegistry | None = None, settings_override: Settings | None = None, **kwargs) -> TestClient:
        app = create_app(settings_override or settings, registry=registry, **kwargs)
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client, sample_registry: RouteRegistry) -> TestClient:
    return make_client(registry=sample_registry, authenticator=authenticate)
