"""Authentication and user profile schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from database.models.users import UserRole

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(BaseModel):
    """Schema for creating an account."""

    name: str = Field(min_length=1, max_length=200, description="Display name")
    email: EmailStr
    password: str = Field(
        min_length=MIN_PASSWORD_LENGTH, max_length=128, description="Plain text password"
    )
    role: Optional[UserRole] = Field(None, description="Role, or null to choose later")
    phone: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=200)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip whitespace from the name."""
        if isinstance(v, str):
            return v.strip()
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class RoleSelectionRequest(BaseModel):
    role: UserRole = Field(description="EMPLOYEE or EMPLOYER")


class ProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v.strip() if v else v


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)


class UserResponse(BaseModel):
    """Public view of a user account."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: EmailStr
    name: str
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime


class SessionResponse(BaseModel):
    """Returned by register, login and role selection."""

    user: UserResponse
    access_token: str = Field(description="Session token, also set as an HttpOnly cookie")
    token_type: str = "bearer"
    redirect_to: str = Field(description="Page the client should open next")
