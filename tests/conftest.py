"""
Shared fixtures: stores, a controllable clock, registry/accounts and a
FastAPI test client wired to them.
"""
import os
import tempfile
from pathlib import Path

import pytest

# Set test environment variables BEFORE importing app modules
_tmp_dir = tempfile.mkdtemp(prefix="shortlinks-tests-")
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORE_BACKEND"] = "json"
os.environ["DB_FILE"] = str(Path(_tmp_dir) / "db.json")
os.environ["PUBLIC_BASE_URL"] = "http://sho.rt"

from fastapi.testclient import TestClient  # noqa: E402

from shortlinks.accounts import CredentialStore  # noqa: E402
from shortlinks.registry import LinkRegistry  # noqa: E402
from shortlinks.store import JsonFileStore, SqlStore  # noqa: E402

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def json_store(tmp_path):
    return JsonFileStore(tmp_path / "db.json")


@pytest.fixture
def sql_store(tmp_path):
    store = SqlStore(f"sqlite:///{tmp_path / 'test.db'}")
    yield store
    store.dispose()


@pytest.fixture(params=["json", "sql"])
def store(request, tmp_path):
    """Every store backend, for behaviour that must not depend on the backend."""
    if request.param == "json":
        yield JsonFileStore(tmp_path / "db.json")
        return
    sql = SqlStore(f"sqlite:///{tmp_path / 'test.db'}")
    yield sql
    sql.dispose()


@pytest.fixture
def registry(store, clock):
    return LinkRegistry(store, clock=clock, default_ttl=604800, code_length=7, max_attempts=5)


@pytest.fixture
def accounts(store):
    return CredentialStore(store, rounds=4)


@pytest.fixture
def client(json_store, clock):
    from shortlinks import main

    registry = LinkRegistry(json_store, clock=clock, default_ttl=604800)
    accounts = CredentialStore(json_store, rounds=4)
    main.app.dependency_overrides[main.get_registry] = lambda: registry
    main.app.dependency_overrides[main.get_accounts] = lambda: accounts
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register a user and return bearer headers for it."""

    def _signup(username="alice", password="secret123"):
        response = client.post("/api/auth/signup", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _signup


@pytest.fixture
def auth_headers(signup):
    return signup()
