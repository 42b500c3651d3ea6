import time
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import gainz.models as _models  # noqa: F401 register all tables
from gainz.app_state import AppState, get_app_state
from gainz.main import app
from gainz.remote.client import NO_ROWS_CODE, AuthSession
from gainz.remote.exceptions import APIError, AuthenticationError

USER_ID = "6f1c2a4e-8b7d-4c3e-9a21-5d4f3b2e1a00"


class FakeBackend:
    """In-memory stand-in for BackendClient that records every call.

    `tables` maps a table (or view) name to the rows a select returns, or to a
    callable taking the filters. `rpc_results` does the same for RPC names.
    Tables listed in `failing` raise APIError on any access.
    """

    def __init__(self):
        self.session: AuthSession | None = None
        self.accounts: dict[str, str] = {}
        self.confirm_email = False
        self.tables: dict[str, Any] = {}
        self.rpc_results: dict[str, Any] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple[str, str, Any]] = []

    # --- Auth ---

    def sign_in_as(self, user_id: str = USER_ID, email: str = "lifter@example.com") -> AuthSession:
        self.session = AuthSession(
            access_token="access",
            refresh_token="refresh",
            expires_at=int(time.time()) + 3600,
            user={"id": user_id, "email": email, "created_at": "2024-01-01T00:00:00Z"},
        )
        return self.session

    def get_session(self) -> AuthSession | None:
        return self.session

    def sign_up(self, email: str, password: str) -> AuthSession | None:
        if email in self.accounts:
            raise AuthenticationError("User already registered")
        if len(password) < 6:
            raise AuthenticationError("Password should be at least 6 characters")
        self.accounts[email] = password
        if self.confirm_email:
            return None
        return self.sign_in_as(user_id=f"{len(self.accounts):08d}-0000-4000-8000-000000000000", email=email)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        if self.accounts.get(email) != password:
            raise AuthenticationError("Invalid login credentials")
        return self.sign_in_as(email=email)

    def sign_out(self) -> None:
        self.session = None

    # --- Rows ---

    def _record(self, method: str, table: str, payload: Any) -> None:
        self.calls.append((method, table, payload))
        if table in self.failing:
            raise APIError(f"{table} unavailable", status_code=500)

    def calls_to(self, method: str, table: str) -> list[Any]:
        return [payload for m, t, payload in self.calls if m == method and t == table]

    def select(self, table, columns="*", filters=None, order=None, limit=None, single=False):
        self._record("select", table, filters)
        result = self.tables.get(table)
        if callable(result):
            result = result(filters or {})
        if single:
            if not result:
                raise APIError("JSON object requested, multiple (or no) rows returned", 406, NO_ROWS_CODE)
            return result[0] if isinstance(result, list) else result
        return result or []

    def _returned(self, table: str, rows) -> list[dict]:
        # Mirrors `return=representation`: generated ids come back
        rows = rows if isinstance(rows, list) else [rows]
        return [{"id": f"{table}-{len(self.calls)}-{i}", **row} for i, row in enumerate(rows)]

    def insert(self, table, rows):
        self._record("insert", table, rows)
        return self._returned(table, rows)

    def upsert(self, table, rows):
        self._record("upsert", table, rows)
        return self._returned(table, rows)

    def update(self, table, values, filters):
        self._record("update", table, (values, filters))
        return [values]

    def delete(self, table, filters):
        self._record("delete", table, filters)

    def rpc(self, fn, params=None):
        self._record("rpc", fn, params)
        result = self.rpc_results.get(fn)
        if callable(result):
            return result(params or {})
        return result


@pytest.fixture(name="engine")
def engine_fixture():
    # StaticPool ensures the in-memory DB is shared across all connections,
    # including those spawned by TestClient's anyio thread pool.
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(name="backend")
def backend_fixture():
    backend = FakeBackend()
    backend.rpc_results["get_or_create_exercise"] = lambda params: f"id-{params['exercise_name']}"
    return backend


@pytest.fixture(name="state")
def state_fixture(engine, backend: FakeBackend):
    state = AppState(engine, backend)
    state.storage.retry_delay = 0
    state.templates.load_templates()
    return state


@pytest.fixture(name="client")
def client_fixture(state: AppState):
    app.dependency_overrides[get_app_state] = lambda: state
    yield TestClient(app)
    app.dependency_overrides.clear()
