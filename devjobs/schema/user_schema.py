from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from devjobs.models.user import UserRole, AccountState


# ----------------- Registration -----------------
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Optional[UserRole] = None


# ----------------- Account type -----------------
class AccountTypeSelect(BaseModel):
    role: UserRole


# ----------------- Settings -----------------
class AccountUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class AccountDelete(BaseModel):
    """Social users confirm with their email, everyone else with their password"""
    email: Optional[str] = None
    password: Optional[str] = None


# ----------------- User response -----------------
class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: Optional[UserRole]
    is_email_verified: bool
    is_social_user: bool
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class AdminUserResponse(UserResponse):
    account_state: AccountState
    deleted_at: Optional[datetime] = None
