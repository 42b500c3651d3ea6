import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import gainz.models as _models  # noqa: F401 registers tables with SQLModel metadata
from gainz.app_state import AppState
from gainz.database import create_db_and_tables, engine
from gainz.remote.exceptions import APIError, AuthenticationError
from gainz.routers import auth, coach, exercises, programs, progress, templates, workouts
from gainz.services.exceptions import ConflictError, NotAuthenticatedError, NotFoundError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    state = AppState(engine)
    state.load()
    app.state.gainz = state
    yield


app = FastAPI(title="Gainz", lifespan=lifespan)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(exercises.router, prefix="/api/exercises", tags=["exercises"])
app.include_router(workouts.router, prefix="/api/workouts", tags=["workouts"])
app.include_router(programs.router, prefix="/api/programs", tags=["programs"])
app.include_router(templates.router, prefix="/api/templates", tags=["templates"])
app.include_router(progress.router, prefix="/api/progress", tags=["progress"])
app.include_router(coach.router, prefix="/api/coach", tags=["coach"])


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def _conflict(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NotAuthenticatedError)
@app.exception_handler(AuthenticationError)
async def _not_authenticated(request: Request, exc: Exception):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(APIError)
async def _backend_error(request: Request, exc: APIError):
    logger.error("Backend error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})
