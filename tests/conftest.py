import pytest
from fastapi.testclient import TestClient

from bouncer.main import app
from bouncer.models.guest import Guest
from bouncer.prompts.loader import clear_prompt_cache
from bouncer.services.plea_orchestrator import get_plea_orchestrator


# Configure anyio to use only asyncio backend
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_prompt_cache():
    clear_prompt_cache()
    yield
    clear_prompt_cache()


@pytest.fixture()
def roster():
    return [
        Guest(name="Alex Kim", phone="555-1111", status="vip"),
        Guest(name="Jane Doe", phone="555-2222", email="jane@example.com"),
        Guest(name="Jane Park", email="jpark@example.com"),
        Guest(name="Sam Rivera", phone="555-3333", status="regular"),
        Guest(name="No Contact"),
    ]


@pytest.fixture()
def override_orchestrator():
    """Install an orchestrator for the API under test; call with the instance."""

    def _install(orchestrator):
        app.dependency_overrides[get_plea_orchestrator] = lambda: orchestrator
        return orchestrator

    yield _install
    app.dependency_overrides.pop(get_plea_orchestrator, None)


@pytest.fixture()
def test_client() -> TestClient:
    with TestClient(app) as client:
        yield client
