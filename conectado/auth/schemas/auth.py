from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from conectado.auth.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Self-service sign-up. Admin accounts are never created here."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    role: Literal["volunteer", "organization"] = "volunteer"


class LoginRequest(BaseModel):
    """Login request schema"""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """
    Token response schema returned after successful login or registration.
    The access token is sent back as ``Authorization: Bearer <token>``.
    """

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
