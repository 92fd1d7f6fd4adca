from passlib.context import CryptContext
import hashlib
import jwt
from pydantic import ValidationError as PydanticValidationError

from .schemas import Claims

PASSWORD_MIN_LEN = 8

# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Unrecognized or corrupt stored hash
        return False


def dummy_verify_password() -> None:
    """Spend the same time as a real verification when no user matched."""
    pwd_context.dummy_verify()


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a signed token, as stored in the sessions table."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenError(Exception):
    """Token could not be decoded: malformed, tampered, expired or missing claims."""


class TokenCodec:
    """
    Encodes Claims into signed JWTs and decodes them back.

    Signature and expiry are verified together; every failure surfaces as
    TokenError so callers cannot tell an expired token from a forged one.
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        self._secret = secret
        self._algorithm = algorithm

    def encode(self, claims: Claims) -> str:
        payload = claims.model_dump(exclude_none=True)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Claims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
            return Claims.model_validate(payload)
        except jwt.PyJWTError as e:
            raise TokenError(str(e)) from e
        except PydanticValidationError as e:
            raise TokenError(f"Malformed token payload: {e}") from e
