from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import SQLModel

from gainz.app_state import AppState, get_app_state
from gainz.remote.exceptions import BackendError
from gainz.schemas import User
from gainz.services.exceptions import ServiceError

router = APIRouter()

StateDep = Annotated[AppState, Depends(get_app_state)]


class Credentials(SQLModel):
    email: str
    password: str


class AuthStatus(SQLModel):
    user: User | None
    is_authenticated: bool
    is_anonymous: bool
    error: str | None = None


def _status(state: AppState) -> AuthStatus:
    store = state.auth
    return AuthStatus(
        user=store.user,
        is_authenticated=store.is_authenticated,
        is_anonymous=store.is_anonymous,
        error=store.error,
    )


@router.get("/me", response_model=AuthStatus)
def get_me(state: StateDep):
    state.auth.initialize_auth()
    return _status(state)


@router.post("/anonymous", response_model=AuthStatus)
def sign_in_anonymously(state: StateDep):
    try:
        state.auth.sign_in_anonymously()
    except (BackendError, ServiceError):
        raise HTTPException(status_code=400, detail=state.auth.error)
    return _status(state)


@router.post("/sign-up", response_model=AuthStatus)
def sign_up(body: Credentials, state: StateDep):
    try:
        state.auth.sign_up(body.email, body.password)
    except (BackendError, ServiceError):
        raise HTTPException(status_code=400, detail=state.auth.error)
    return _status(state)


@router.post("/sign-in", response_model=AuthStatus)
def sign_in(body: Credentials, state: StateDep):
    try:
        state.auth.sign_in(body.email, body.password)
    except (BackendError, ServiceError):
        raise HTTPException(status_code=401, detail=state.auth.error)
    return _status(state)


@router.post("/migrate", response_model=AuthStatus)
def migrate_to_real_account(body: Credentials, state: StateDep):
    if not state.auth.is_anonymous:
        raise HTTPException(status_code=400, detail="Only anonymous accounts can be migrated")
    try:
        state.auth.migrate_to_real_account(body.email, body.password)
    except (BackendError, ServiceError):
        raise HTTPException(status_code=400, detail=state.auth.error)
    return _status(state)


@router.post("/sign-out", status_code=204)
def sign_out(state: StateDep):
    state.auth.sign_out()
