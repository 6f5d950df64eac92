from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    """Model for registering a new user"""

    username: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserLogin(BaseModel):
    """Credentials; ``username`` may also hold the account email."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    id: int
    username: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class UserProfile(UserSummary):
    created_at: datetime


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user_id: int = Field(serialization_alias="userId")


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    user: UserSummary


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(BaseModel):
    user: UserProfile
