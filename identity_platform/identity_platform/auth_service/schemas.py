from pydantic import BaseModel, ConfigDict, Field

from typing import Optional


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=255)
    password: str
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    username_or_email: str
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str


class Claims(BaseModel):
    """Signed token payload: a snapshot of the user at issuance time."""

    sub: str
    email: str
    username: str
    role: str
    iat: int
    exp: int
    jti: Optional[str] = None


class UserInfo(BaseModel):
    """Public user profile (never includes the password hash)."""

    id: str
    email: str
    username: str
    full_name: Optional[str] = None
    role: str
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserInfo


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
