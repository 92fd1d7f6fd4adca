"""
Auth Router - maps /auth endpoints onto AuthService operations.

Error responses are produced by the app-level exception handlers; handlers
here only translate errors whose status depends on the call site.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status

from ..errors import AuthError, NotFoundError
from ..middleware import AuthMiddleware, extract_bearer_token
from ..schemas import (
    AuthResponse,
    ChangePasswordRequest,
    Claims,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserInfo,
)
from ..service import AuthService

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"description": "Validation or conflict error", "model": ErrorResponse},
        401: {"description": "Authentication failed", "model": ErrorResponse},
    },
)
logger = logging.getLogger(__name__)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_current_claims(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> Claims:
    """Claims of the caller, reusing what BearerAuthMiddleware already verified."""
    ctx = getattr(request.state, "auth", None)
    if ctx is not None and ctx.is_authenticated():
        return ctx.claims
    return AuthMiddleware(auth_service).verify_request(request)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    return auth_service.register(
        email=payload.email,
        username=payload.username,
        password=payload.password,
        full_name=payload.full_name,
    )


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    return auth_service.login(payload.username_or_email, payload.password)


@router.post("/refresh", response_model=AuthResponse)
def refresh(payload: RefreshTokenRequest, auth_service: AuthService = Depends(get_auth_service)):
    return auth_service.refresh(payload.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    auth_service: AuthService = Depends(get_auth_service),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
):
    """
    Best-effort logout: always succeeds.
    A presented token is validated but stays usable until it expires.
    """
    token = extract_bearer_token(authorization)
    if token is not None:
        try:
            auth_service.logout(token)
        except AuthError as e:
            logger.debug(f"Logout with unusable token: {e.message}")
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserInfo)
def get_me(
    claims: Claims = Depends(get_current_claims),
    auth_service: AuthService = Depends(get_auth_service),
):
    try:
        return auth_service.get_user(claims.sub)
    except NotFoundError as e:
        raise AuthError("Unauthorized") from e


@router.put("/profile", response_model=UserInfo)
def update_profile(
    payload: UpdateProfileRequest,
    claims: Claims = Depends(get_current_claims),
    auth_service: AuthService = Depends(get_auth_service),
):
    return auth_service.update_profile(
        claims.sub,
        full_name=payload.full_name,
        avatar_url=payload.avatar_url,
    )


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    claims: Claims = Depends(get_current_claims),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.change_password(claims.sub, payload.old_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")
