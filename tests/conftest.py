import pytest
from fastapi.testclient import TestClient

from lifeos.config import Settings, get_settings
from lifeos.dependencies.auth import AuthContext, get_auth_context, get_store
from lifeos.dependencies.services import get_calendar
from lifeos.errors import MirrorError, PersistenceError
from lifeos.main import app
from lifeos.storage.local_store import LocalStore


class FakeCalendar:
    def __init__(self, connected: bool = True, fail: bool = False):
        self.connected = connected
        self.fail = fail
        self.created = []
        self.updated = []
        self.deleted = []

    def is_connected(self) -> bool:
        return self.connected

    async def create_event(self, event) -> str:
        if self.fail:
            raise MirrorError("calendar down")
        self.created.append(event)
        return f"g-{len(self.created)}"

    async def update_event(self, external_id, event) -> None:
        if self.fail:
            raise MirrorError("calendar down")
        self.updated.append((external_id, event))

    async def delete_event(self, external_id) -> None:
        if self.fail:
            raise MirrorError("calendar down")
        self.deleted.append(external_id)


class FlakyStore(LocalStore):
    """LocalStore whose listed operations fail like an unreachable Supabase."""

    def __init__(self, failing=()):
        super().__init__()
        self.failing = set(failing)

    def _maybe_fail(self, op):
        if op in self.failing:
            raise PersistenceError(f"{op} failed: connection reset")

    async def insert(self, table, row):
        self._maybe_fail("insert")
        return await super().insert(table, row)

    async def update(self, table, filters, values):
        self._maybe_fail("update")
        return await super().update(table, filters, values)

    async def delete(self, table, filters):
        self._maybe_fail("delete")
        return await super().delete(table, filters)


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def auth():
    return AuthContext(user_id="user-1", token="jwt-1", email="ada@example.com")


@pytest.fixture
def anonymous():
    return AuthContext()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def settings():
    return Settings(openai_api_key="sk-test", timezone="UTC")


@pytest.fixture
def client(store, auth, calendar, settings):
    app.dependency_overrides[get_auth_context] = lambda: auth
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_calendar] = lambda: calendar
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
