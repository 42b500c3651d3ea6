"""Client for the managed backend (Supabase auth + PostgREST)."""

import logging
import time
from typing import Any, Protocol

import httpx
from sqlmodel import SQLModel

from gainz.remote.exceptions import APIError, AuthenticationError, TokenExpiredError

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"
NO_ROWS_CODE = "PGRST116"

Filters = dict[str, Any]
Order = list[tuple[str, bool]]


class SessionStorage(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class AuthSession(SQLModel):
    access_token: str
    refresh_token: str
    expires_at: int  # epoch seconds
    user: dict[str, Any]

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def is_expiring(self) -> bool:
        return time.time() >= self.expires_at - 300


def _encode_filter(value: Any) -> str:
    if isinstance(value, tuple):
        operator, operand = value
        if operator == "in":
            return f"in.({','.join(str(v) for v in operand)})"
        return f"{operator}.{_encode_scalar(operand)}"
    if value is None:
        return "is.null"
    return f"eq.{_encode_scalar(value)}"


def _encode_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _error_from_response(response: httpx.Response, fallback: str) -> APIError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.text
        or fallback
    )
    return APIError(str(message), status_code=response.status_code, code=body.get("code"))


class BackendClient:
    """Thin synchronous client: session-aware auth plus row CRUD and RPC."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        storage: SessionStorage,
        http: httpx.Client | None = None,
    ):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.storage = storage
        self.http = http or httpx.Client(timeout=30)

    # --- Auth ---

    def _auth_headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }

    def _store_session(self, data: dict) -> AuthSession:
        expires_at = data.get("expires_at") or int(time.time()) + int(data.get("expires_in", 3600))
        session = AuthSession(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(expires_at),
            user=data["user"],
        )
        self.storage.set(SESSION_KEY, session.model_dump())
        return session

    def sign_up(self, email: str, password: str) -> AuthSession | None:
        """Register an account.

        Returns None when the backend holds the session back until the email is confirmed.
        """
        response = self.http.post(
            f"{self.url}/auth/v1/signup",
            headers=self._auth_headers(),
            json={"email": email, "password": password},
        )
        if response.status_code >= 400:
            raise AuthenticationError(str(_error_from_response(response, "Sign up failed")))

        data = response.json()
        if "access_token" not in data:
            return None
        return self._store_session(data)

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = self.http.post(
            f"{self.url}/auth/v1/token",
            params={"grant_type": "password"},
            headers=self._auth_headers(),
            json={"email": email, "password": password},
        )
        if response.status_code >= 400:
            raise AuthenticationError(str(_error_from_response(response, "Sign in failed")))
        return self._store_session(response.json())

    def refresh_session(self, session: AuthSession) -> AuthSession:
        response = self.http.post(
            f"{self.url}/auth/v1/token",
            params={"grant_type": "refresh_token"},
            headers=self._auth_headers(),
            json={"refresh_token": session.refresh_token},
        )
        if response.status_code >= 400:
            raise TokenExpiredError("Failed to refresh session")
        return self._store_session(response.json())

    def get_session(self) -> AuthSession | None:
        """Return the persisted session, refreshed when close to expiry."""
        data = self.storage.get(SESSION_KEY)
        if not data:
            return None
        session = AuthSession.model_validate(data)
        if session.is_expiring:
            try:
                session = self.refresh_session(session)
            except (TokenExpiredError, httpx.HTTPError) as e:
                logger.warning("Could not refresh backend session: %s", e)
                return None
        return session

    def sign_out(self) -> None:
        data = self.storage.get(SESSION_KEY)
        self.storage.remove(SESSION_KEY)
        if not data:
            return
        try:
            self.http.post(
                f"{self.url}/auth/v1/logout",
                headers=self._auth_headers(data["access_token"]),
            )
        except httpx.HTTPError as e:
            logger.warning("Remote sign out failed: %s", e)

    # --- Rows ---

    def _request(self, method: str, path: str, headers: dict | None = None, **kwargs) -> httpx.Response:
        session = self.get_session()
        token = session.access_token if session else None
        all_headers = {**self._auth_headers(token), **(headers or {})}
        response = self.http.request(method, f"{self.url}{path}", headers=all_headers, **kwargs)

        if response.status_code == 401 and session is not None:
            session = self.refresh_session(session)
            all_headers = {**self._auth_headers(session.access_token), **(headers or {})}
            response = self.http.request(method, f"{self.url}{path}", headers=all_headers, **kwargs)

        if response.status_code >= 400:
            raise _error_from_response(response, f"{method} {path} failed")
        return response

    @staticmethod
    def _query(filters: Filters | None, order: Order | None = None, limit: int | None = None) -> dict:
        params = {column: _encode_filter(value) for column, value in (filters or {}).items()}
        if order:
            params["order"] = ",".join(f"{col}.{'asc' if asc else 'desc'}" for col, asc in order)
        if limit is not None:
            params["limit"] = str(limit)
        return params

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Filters | None = None,
        order: Order | None = None,
        limit: int | None = None,
        single: bool = False,
    ) -> Any:
        params = {"select": columns, **self._query(filters, order, limit)}
        headers = {"Accept": "application/vnd.pgrst.object+json"} if single else None
        return self._request("GET", f"/rest/v1/{table}", headers=headers, params=params).json()

    def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        response = self._request(
            "POST",
            f"/rest/v1/{table}",
            headers={"Prefer": "return=representation"},
            json=rows,
        )
        return response.json()

    def upsert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        response = self._request(
            "POST",
            f"/rest/v1/{table}",
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            json=rows,
        )
        return response.json()

    def update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        response = self._request(
            "PATCH",
            f"/rest/v1/{table}",
            headers={"Prefer": "return=representation"},
            params=self._query(filters),
            json=values,
        )
        return response.json()

    def delete(self, table: str, filters: Filters) -> None:
        self._request("DELETE", f"/rest/v1/{table}", params=self._query(filters))

    def rpc(self, fn: str, params: dict | None = None) -> Any:
        return self._request("POST", f"/rest/v1/rpc/{fn}", json=params or {}).json()
