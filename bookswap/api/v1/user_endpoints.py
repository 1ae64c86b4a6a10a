"""
API endpoints for registration, login and the caller's profile.
"""

from fastapi import APIRouter, Depends, status

from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import domain_error_to_http, domain_user_to_api
from bookswap.api.v1.dependencies import get_current_user_id, get_user_service
from bookswap.domain.errors import DomainError
from bookswap.domain.services import UserService

router = APIRouter()


@router.post("/users/register", response_model=api.RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: api.RegisterRequest,
    users: UserService = Depends(get_user_service),
) -> api.RegisterResponse:
    """
    Create an account and return a bearer token for it.

    Raises:
        400: Malformed profile data or weak password
        409: Username or email already registered
    """
    try:
        user, token = users.register(
            body.username,
            body.email,
            body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            location=body.location,
            bio=body.bio,
            profile_picture_url=body.profile_picture_url,
        )
    except DomainError as e:
        raise domain_error_to_http(e) from e

    return api.RegisterResponse(access_token=token, user=domain_user_to_api(user))


@router.post("/users/login", response_model=api.TokenResponse)
def login(
    body: api.LoginRequest,
    users: UserService = Depends(get_user_service),
) -> api.TokenResponse:
    try:
        token = users.login(body.username, body.password)
    except DomainError as e:
        raise domain_error_to_http(e) from e

    return api.TokenResponse(access_token=token)


@router.get("/users/me", response_model=api.User)
def me(
    user_id: int = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
) -> api.User:
    try:
        return domain_user_to_api(users.get_user(user_id))
    except DomainError as e:
        raise domain_error_to_http(e) from e
