"""
FastAPI dependencies for dependency injection.

Services are built once by the application lifespan (see main.py) and kept
on app.state; these functions hand them to endpoints through Depends(),
so nothing here holds module-level state.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bookswap.domain.errors import AuthenticationError, NotFoundError
from bookswap.domain.services import AuthorizationGate, CatalogService, ExchangeService, UserService
from bookswap.infrastructure.db.database import SqliteDatabase

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class ServiceContainer:
    """Everything the endpoints need, wired around one database handle."""

    database: SqliteDatabase
    gate: AuthorizationGate
    users: UserService
    catalog: CatalogService
    exchanges: ExchangeService


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not initialized",
        )
    return container


def get_user_service(container: ServiceContainer = Depends(get_container)) -> UserService:
    return container.users


def get_catalog_service(container: ServiceContainer = Depends(get_container)) -> CatalogService:
    return container.catalog


def get_exchange_service(container: ServiceContainer = Depends(get_container)) -> ExchangeService:
    return container.exchanges


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    container: ServiceContainer = Depends(get_container),
) -> int:
    """
    Resolve the bearer token to the caller's user ID.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or names a
            user that no longer exists
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return container.gate.authenticate(credentials.credentials)
    except (AuthenticationError, NotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
