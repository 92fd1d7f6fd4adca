"""
Auth Service - JWT authentication for the web application
"""
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .db import create_db_engine, create_session_factory, init_db
from .errors import AuthError, AuthServiceError, ConflictError, NotFoundError, ValidationError
from .middleware import AuthMiddleware, BearerAuthMiddleware
from .routes import auth, health
from .service import AuthService
from .utils.event_logger import configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_400_BAD_REQUEST,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_400_BAD_REQUEST,
}


def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    headers = dict(headers or {})
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers.setdefault("WWW-Authenticate", "Bearer")
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers or None)


async def auth_service_error_handler(_request: Request, exc: AuthServiceError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return error_response(status_code, exc.message)


async def request_validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request body"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Not found" if exc.status_code == status.HTTP_404_NOT_FOUND else str(exc.detail)
    return error_response(exc.status_code, message, exc.headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthServiceError, auth_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application from an explicit settings object.

    Engine, session factory and AuthService are created here and kept on
    ``app.state``; nothing is read from module globals at request time.
    """
    settings = settings or get_settings()

    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)
    auth_service = AuthService(session_factory, settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Configure logging and apply the schema on startup, release the pool on shutdown"""
        configure_logging(settings)
        init_db(engine)
        yield
        engine.dispose()

    app = FastAPI(
        title="Auth Service",
        description="JWT authentication: registration, login, token refresh and profile management",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.auth_service = auth_service

    register_exception_handlers(app)

    app.add_middleware(BearerAuthMiddleware, auth_middleware=AuthMiddleware(auth_service))
    # Added last so it wraps the bearer check and answers CORS preflights first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(health.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": "Auth Service",
            "version": "1.0.0",
            "status": "running"
        }

    logger.info(f"Auth Service configured (token lifetime {settings.JWT_EXPIRY_HOURS}h)")
    return app


app = create_app()
