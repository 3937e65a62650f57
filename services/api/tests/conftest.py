import pytest
import fakeredis
from fastapi.testclient import TestClient

from app.main import app, limiter
from app.deps import get_catalog, get_history_store
from app.infra import redis_client
from app.services.catalog import load_catalog
from app.services.history import InMemoryHistory

# --- Test Catalog ---

# Small document covering every resolution strategy.
TEST_DOCUMENT = {
    "length": {
        "units": {"meter": 1, "kilometer": 0.001, "foot": 3.28084, "inch": 39.3701},
    },
    "temperature": {
        "units": {"celsius": "C", "fahrenheit": "F", "kelvin": "K"},
        "formula": {
            "C_to_F": "value * 9/5 + 32",
            "F_to_C": "(value - 32) * 5/9",
            "C_to_K": "value + 273.15",
            "K_to_C": "value - 273.15",
        },
    },
    "speed": {
        "units": {"meter_per_second": 1, "kilometer_per_hour": 3.6, "mile_per_hour": 2.23694, "knot": 1.94384},
        "formula": {
            "meter_per_second_to_kilometer_per_hour": "value * 3.6",
            "mile_per_hour_to_knot": "value * 0.868976",
            # references a unit the category does not define
            "ghost_to_knot": "value * 2",
        },
    },
    "broken": {
        "units": {"a": 1, "b": 2, "c": 4},
        "formula": {
            "a_to_b": "value * foo",
            "b_to_c": "value / 0",
            "a_to_c": "value * 0",
        },
    },
}


@pytest.fixture
def catalog():
    return load_catalog(TEST_DOCUMENT)


@pytest.fixture
def history():
    return InMemoryHistory(limit=5)


@pytest.fixture
def client(history):
    """Test client on the bundled catalog with an isolated history."""
    app.dependency_overrides[get_history_store] = lambda: history
    limiter.reset()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def test_catalog_client(client, catalog):
    """Test client whose catalog is TEST_DOCUMENT."""
    app.dependency_overrides[get_catalog] = lambda: catalog
    yield client


@pytest.fixture(autouse=True)
def mock_redis():
    fake = fakeredis.FakeRedis(decode_responses=True)
    redis_client._redis_sync = fake
    yield fake
    redis_client._redis_sync = None
