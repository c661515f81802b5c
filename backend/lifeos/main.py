import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request as StarletteRequest

from lifeos.api.chat import router as chat_router
from lifeos.api.dashboard import router as dashboard_router
from lifeos.api.events import router as events_router
from lifeos.api.goals import router as goals_router
from lifeos.api.habits import router as habits_router
from lifeos.api.profile import router as profile_router
from lifeos.api.tasks import router as tasks_router
from lifeos.api.workouts import router as workouts_router
from lifeos.config import get_settings
from lifeos.errors import (
    LifeOSError,
    NotFound,
    PersistenceError,
    SchemaMismatch,
    Unauthenticated,
    ValidationError,
)

app = FastAPI(title="LifeOS API", version="0.1.0")

# CORS for local dev and the web app
origins = [
    "http://localhost",
    "http://127.0.0.1",
    "http://localhost:3000",
    "http://localhost:5173",
    "*",  # tighten later
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("uvicorn.error")


@app.middleware("http")
async def log_requests(request: StarletteRequest, call_next):
    logger.info(f"--> {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        logger.info(f"<-- {response.status_code} {request.method} {request.url.path}")
        return response
    except Exception:
        logger.exception(f"!! {request.method} {request.url.path} crashed")
        raise


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTPException {exc.status_code} at {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def _status_for(exc: LifeOSError) -> int:
    if isinstance(exc, Unauthenticated):
        return 401
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, SchemaMismatch):
        return 409
    if isinstance(exc, PersistenceError):
        return 502
    return 500


@app.exception_handler(LifeOSError)
async def lifeos_error_handler(request: Request, exc: LifeOSError):
    status = _status_for(exc)
    logger.warning(f"{type(exc).__name__} {status} at {request.url.path}: {exc}")
    return JSONResponse(status_code=status, content={"detail": str(exc)})


@app.get("/")
async def root():
    return {"status": "ok", "env": get_settings().app_env}


# Routers
app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
app.include_router(events_router, prefix="/events", tags=["events"])
app.include_router(goals_router, prefix="/goals", tags=["goals"])
app.include_router(profile_router, prefix="/profile", tags=["profile"])
app.include_router(habits_router, prefix="/habits", tags=["habits"])
app.include_router(workouts_router, prefix="/workouts", tags=["workouts"])
app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
app.include_router(chat_router, prefix="/chat", tags=["chat"])
