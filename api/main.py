"""Library API: FastAPI entry point.

Registers middleware, the library router, the error handler and lifecycle
hooks. `create_app` takes an optional Database so tests can point the app at
their own store; the module-level `app` uses DATABASE_URL.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.middleware import CallerMiddleware
from core.database import Database
from core.observability.log_setup import configure_logging
from library.config import LibraryConfig
from library.customers import CustomerService
from library.engine import LoanEngine
from library.errors import LibraryError
from library.favorites import FavoritesService
from library.reporting import ReportingService
from library.staff import StaffService
from library.router import router as library_router

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

VERSION = "0.1.0"
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")
CREATE_TABLES = os.getenv("LIBRARY_CREATE_TABLES", "false").lower() == "true"

# Library error kind -> HTTP status
ERROR_STATUS: dict[str, int] = {
    "not_found": 404,
    "favorite_not_found": 404,
    "insufficient_copies": 409,
    "limit_exceeded": 422,
    "capacity_conflict": 409,
    "has_active_loans": 409,
    "invalid_state": 409,
    "already_favorited": 409,
    "already_exists": 409,
}


async def library_error_handler(request: Request, exc: LibraryError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 400),
        content={"message": exc.detail, **exc.to_dict()},
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    database: Database | None = None,
    settings: LibraryConfig | None = None,
    create_tables: bool = CREATE_TABLES,
) -> FastAPI:
    configure_logging()
    database = database or Database()
    settings = settings or LibraryConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown hooks."""
        if create_tables:
            await database.init()
        logger.info("Library API started on %s", database.backend)
        yield
        await database.close()
        logger.info("Library API shut down")

    app = FastAPI(
        title="Library",
        description="Book catalog, loans and favorites with consistent inventory",
        version=VERSION,
        lifespan=lifespan,
    )

    sessions = database.session_factory
    app.state.database = database
    app.state.loan_engine = LoanEngine(sessions, settings)
    app.state.reporting = ReportingService(sessions, settings)
    app.state.favorites = FavoritesService(sessions)
    app.state.customers = CustomerService(sessions)
    app.state.staff = StaffService(sessions)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CallerMiddleware)
    app.add_exception_handler(LibraryError, library_error_handler)

    app.include_router(library_router, prefix="/api/library", tags=["Library"])

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": VERSION}

    @app.get("/")
    async def root():
        return {
            "name": "Library",
            "version": VERSION,
            "docs": "/docs",
            "description": "Library loan engine",
        }

    return app


app = create_app()
