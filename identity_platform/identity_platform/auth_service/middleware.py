"""
Bearer token extraction, public/protected path classification and the
request guard that applies them to every incoming request.
"""
import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .errors import AuthError
from .schemas import Claims, UserInfo
from .service import AuthService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Paths reachable without a token. Matched exactly or as a parent segment
# ("/arena" also covers "/arena/…"); "/" only ever matches itself.
PUBLIC_PATHS = (
    "/playground",
    "/arena",
    "/auth/login",
    "/auth/register",
    "/auth/refresh",
    "/auth/logout",
    "/health",
    "/ready",
    "/docs",
    "/openapi.json",
)
PUBLIC_PREFIXES = ("/static/", "/assets/")


def path_requires_auth(path: str) -> bool:
    """Return False for the public allow-list, True for everything else."""
    if path == "/":
        return False
    if path.startswith(PUBLIC_PREFIXES):
        return False
    for public in PUBLIC_PATHS:
        if path == public or path.startswith(public + "/"):
            return False
    return True


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class AuthContext:
    """What the current request knows about its caller."""

    def __init__(self, claims: Optional[Claims] = None, user: Optional[UserInfo] = None):
        self.claims = claims
        self.user = user

    @classmethod
    def with_claims(cls, claims: Claims) -> "AuthContext":
        return cls(claims=claims)

    def is_authenticated(self) -> bool:
        return self.claims is not None

    def has_role(self, role: str) -> bool:
        return self.claims is not None and self.claims.role == role

    @property
    def user_id(self) -> Optional[str]:
        return self.claims.sub if self.claims else None


class AuthMiddleware:
    def __init__(self, auth_service: AuthService):
        self.auth_service = auth_service

    def verify_request(self, request: Request) -> Claims:
        """
        Validate the request's bearer token and return its claims.

        A missing Authorization header or a non-Bearer scheme is rejected
        before the token is ever decoded.

        Raises:
            AuthError: If the header is absent, malformed, or the token is invalid
        """
        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            raise AuthError("Unauthorized")
        return self.auth_service.validate(token)

    def get_current_user(self, token: str) -> UserInfo:
        claims = self.auth_service.validate(token)
        return self.auth_service.get_user(claims.sub)


def unauthorized_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized"},
        headers={"WWW-Authenticate": "Bearer"},
    )


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests to protected paths that lack a valid bearer token.

    Stores an AuthContext on ``request.state.auth``: authenticated for
    protected paths, anonymous for public ones.
    """

    def __init__(self, app, auth_middleware: AuthMiddleware):
        super().__init__(app)
        self.auth_middleware = auth_middleware

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or not path_requires_auth(request.url.path):
            request.state.auth = AuthContext()
            return await call_next(request)

        try:
            claims = self.auth_middleware.verify_request(request)
        except AuthError as e:
            logger.debug(f"Rejected {request.method} {request.url.path}: {e.message}")
            return unauthorized_response()

        request.state.auth = AuthContext.with_claims(claims)
        return await call_next(request)
