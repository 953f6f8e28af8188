"""FastAPI application for the gymkeeper API."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings
from ..db.engine import get_db_path, init_db
from ..db.repositories import Store
from ..errors import GymError
from ..security import TokenSigner
from .responses import error
from .routers import auth, clients, plans, sessions, statistics, users

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - makes sure the schema exists."""
    await init_db(app.state.store.db_path)
    yield


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "Invalid input data. " + "; ".join(parts)


def create_app(settings: Settings | None = None, db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Runtime settings; read from the environment when omitted
        db_path: Database file override (tests use a temporary file)
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="gymkeeper",
        description="Gym management backend",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = Store(db_path or get_db_path(settings.data_dir))
    app.state.tokens = TokenSigner(settings.secret_key, settings.token_ttl)

    @app.exception_handler(GymError)
    async def handle_gym_error(request: Request, exc: GymError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=error(exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=error(_describe_validation_error(exc)))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=error(str(exc) or "Something went wrong!"))

    # Include routers
    for module in (auth, users, clients, sessions, plans, statistics):
        app.include_router(module.router, prefix=API_PREFIX)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
