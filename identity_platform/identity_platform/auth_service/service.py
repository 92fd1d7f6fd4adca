"""
AuthService: registration, login, token refresh and account management.
"""
import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .auth import (
    PASSWORD_MIN_LEN,
    TokenCodec,
    TokenError,
    dummy_verify_password,
    hash_password,
    hash_token,
    verify_password,
)
from .config import Settings
from .errors import AuthError, ConflictError, NotFoundError, ValidationError
from .models import AuthSession, User, utcnow
from .schemas import AuthResponse, Claims, UserInfo
from .utils.event_logger import log_auth_event

logger = logging.getLogger(__name__)

REFRESH_TOKEN_LIFETIME = timedelta(days=30)
TOKEN_TYPE = "Bearer"


def _check_password_policy(password: str) -> None:
    if len(password) < PASSWORD_MIN_LEN:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LEN} characters long", field="password"
        )


class AuthService:
    """
    Orchestrates the auth flows against the users/sessions tables.

    Each operation opens its own session from ``session_factory`` and commits
    as it goes; there is no transaction spanning an operation's statements.
    """

    def __init__(self, session_factory: sessionmaker, settings: Settings):
        self._session_factory = session_factory
        self._expiry_hours = settings.JWT_EXPIRY_HOURS
        self._codec = TokenCodec(settings.JWT_SECRET, settings.JWT_ALGORITHM)

    def register(
        self,
        email: str,
        username: str,
        password: str,
        full_name: Optional[str] = None,
    ) -> AuthResponse:
        _check_password_policy(password)

        with self._session_factory() as db:
            if db.query(User).filter(User.email == email).first():
                raise ConflictError("Email already exists", field="email")
            if db.query(User).filter(User.username == username).first():
                raise ConflictError("Username already exists", field="username")

            user = User(
                id=str(uuid.uuid4()),
                email=email,
                username=username,
                password_hash=hash_password(password),
                full_name=full_name,
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError as e:
                # Lost a race against a concurrent registration
                db.rollback()
                raise ConflictError("Email or username already exists") from e
            db.refresh(user)

            log_auth_event("register", user.id, user.username)
            return self._issue_tokens(db, user)

    def login(self, username_or_email: str, password: str) -> AuthResponse:
        with self._session_factory() as db:
            user = (
                db.query(User)
                .filter(or_(User.email == username_or_email, User.username == username_or_email))
                .first()
            )
            if user is None:
                dummy_verify_password()
                log_auth_event("login_failure", None, username_or_email, reason="unknown_user")
                raise AuthError("Invalid credentials")
            # Always verified: an inactive rejection takes as long as a bad password
            password_ok = verify_password(password, user.password_hash)
            if not user.is_active:
                log_auth_event("login_failure", user.id, user.username, reason="inactive")
                raise AuthError("Invalid credentials")
            if not password_ok:
                log_auth_event("login_failure", user.id, user.username, reason="bad_password")
                raise AuthError("Invalid credentials")

            user.last_login = utcnow()
            db.commit()

            log_auth_event("login_success", user.id, user.username)
            return self._issue_tokens(db, user)

    def refresh(self, refresh_token: str) -> AuthResponse:
        claims = self.validate(refresh_token)

        with self._session_factory() as db:
            user = db.get(User, claims.sub)
            if user is None:
                raise AuthError("User not found")
            if not user.is_active:
                raise AuthError("Account is disabled")

            log_auth_event("token_refresh", user.id, user.username)
            return self._issue_tokens(db, user)

    def validate(self, token: str) -> Claims:
        try:
            return self._codec.decode(token)
        except TokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise AuthError("Invalid or expired token") from e

    def get_user(self, user_id: str) -> UserInfo:
        with self._session_factory() as db:
            user = self._get_active_user(db, user_id)
            return UserInfo.model_validate(user)

    def logout(self, token: str) -> None:
        # Tokens stay valid until they expire; nothing is revoked server-side.
        claims = self.validate(token)
        log_auth_event("logout", claims.sub, claims.username)

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        _check_password_policy(new_password)

        with self._session_factory() as db:
            user = self._get_active_user(db, user_id)
            if not verify_password(old_password, user.password_hash):
                raise AuthError("Invalid old password", field="old_password")

            user.password_hash = hash_password(new_password)
            user.updated_at = utcnow()
            db.commit()

            log_auth_event("password_change", user.id, user.username)

    def update_profile(
        self,
        user_id: str,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> UserInfo:
        with self._session_factory() as db:
            user = self._get_active_user(db, user_id)

            if full_name is not None:
                user.full_name = full_name
            if avatar_url is not None:
                user.avatar_url = avatar_url
            user.updated_at = utcnow()
            db.commit()
            db.refresh(user)

            log_auth_event(
                "profile_update",
                user.id,
                user.username,
                full_name=full_name is not None,
                avatar_url=avatar_url is not None,
            )
            return UserInfo.model_validate(user)

    def _get_active_user(self, db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if user is None:
            raise NotFoundError()
        return user

    def _issue_tokens(self, db: Session, user: User) -> AuthResponse:
        """
        Sign an access/refresh pair for ``user`` and record the session row.

        Both tokens carry the same snapshot of the user; only ``exp`` differs.
        The sessions row stores their digests and the access expiry.
        """
        now = utcnow()
        access_expiry = now + timedelta(hours=self._expiry_hours)
        refresh_expiry = now + REFRESH_TOKEN_LIFETIME
        user_info = UserInfo.model_validate(user)

        access_token = self._codec.encode(self._claims_for(user_info, now, access_expiry))
        refresh_token = self._codec.encode(self._claims_for(user_info, now, refresh_expiry))

        db.add(
            AuthSession(
                id=str(uuid.uuid4()),
                user_id=user_info.id,
                token_hash=hash_token(access_token),
                refresh_token_hash=hash_token(refresh_token),
                expires_at=access_expiry,
            )
        )
        db.commit()

        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type=TOKEN_TYPE,
            expires_in=self._expiry_hours * 3600,
            user=user_info,
        )

    @staticmethod
    def _claims_for(user: UserInfo, issued_at, expires_at) -> Claims:
        return Claims(
            sub=user.id,
            email=user.email,
            username=user.username,
            role=user.role,
            iat=int(issued_at.timestamp()),
            exp=int(expires_at.timestamp()),
            jti=str(uuid.uuid4()),
        )
