"""
Main application entry point.

The database handle is opened when the application starts and closed when
it shuts down; every service is wired around that one handle.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI

from bookswap.api.v1.book_endpoints import router as book_router
from bookswap.api.v1.dependencies import ServiceContainer
from bookswap.api.v1.exchange_endpoints import router as exchange_router
from bookswap.api.v1.listing_endpoints import router as listing_router
from bookswap.api.v1.user_endpoints import router as user_router
from bookswap.config import Settings, configure_logging
from bookswap.domain.ports import PasswordHasher
from bookswap.domain.services import AuthorizationGate, CatalogService, ExchangeService, UserService
from bookswap.infrastructure.auth.jwt_auth_provider import JwtAuthProvider, PasslibPasswordHasher
from bookswap.infrastructure.db.database import SqliteDatabase
from bookswap.infrastructure.db.sqlite_book_repository import SqliteBookRepository
from bookswap.infrastructure.db.sqlite_exchange_request_repository import SqliteExchangeRequestRepository
from bookswap.infrastructure.db.sqlite_listing_repository import SqliteListingRepository
from bookswap.infrastructure.db.sqlite_user_repository import SqliteUserRepository

logger = logging.getLogger(__name__)


def build_container(
    settings: Settings,
    password_hasher: Optional[PasswordHasher] = None,
) -> ServiceContainer:
    """
    Open the database and wire repositories and services around it.

    Raises:
        ValueError: If no JWT secret is configured
    """
    database = SqliteDatabase(settings.db_path, busy_timeout_ms=settings.busy_timeout_ms).open()

    listings = SqliteListingRepository(database)
    exchanges = SqliteExchangeRequestRepository(database)
    books = SqliteBookRepository(database)
    users = SqliteUserRepository(database)

    try:
        auth_provider = JwtAuthProvider(settings.jwt_secret, users, settings.jwt_expires_in)
    except ValueError:
        database.close()
        raise

    gate = AuthorizationGate(auth_provider, listings)
    return ServiceContainer(
        database=database,
        gate=gate,
        users=UserService(users, password_hasher or PasslibPasswordHasher(), auth_provider, database),
        catalog=CatalogService(books, listings, exchanges, gate, database),
        exchanges=ExchangeService(
            exchanges,
            listings,
            gate,
            database,
            atomic_retirement=settings.atomic_retirement,
        ),
    )


def create_app(
    settings: Optional[Settings] = None,
    password_hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    """Build the FastAPI application. Settings default to the environment."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        container = build_container(settings, password_hasher)
        app.state.container = container
        logger.info(
            f"bookswap started (db={settings.db_path}, "
            f"atomic_retirement={settings.atomic_retirement})"
        )
        try:
            yield
        finally:
            app.state.container = None
            container.database.close()

    app = FastAPI(
        title="Bookswap API",
        description="A peer-to-peer book exchange marketplace.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    health_router = APIRouter()

    @health_router.get("/health")
    def health_check() -> dict:
        container = getattr(app.state, "container", None)
        database_open = container is not None and container.database.is_open
        return {
            "status": "ok" if database_open else "unavailable",
            "database": database_open,
        }

    # Include API routers
    app.include_router(user_router, prefix="/api/v1", tags=["users"])
    app.include_router(book_router, prefix="/api/v1", tags=["books"])
    app.include_router(listing_router, prefix="/api/v1", tags=["listings"])
    app.include_router(exchange_router, prefix="/api/v1", tags=["exchanges"])
    app.include_router(health_router, prefix="/api/v1", tags=["health"])

    @app.get("/")
    def read_root():
        """Root endpoint."""
        return {
            "message": "Welcome to the Bookswap API",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("bookswap.main:app", host="0.0.0.0", port=8000)
