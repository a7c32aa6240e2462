from pydantic import BaseModel
from typing import Optional


# ----------------- Login -----------------
class LoginRequest(BaseModel):
    email: str
    password: str
    remember: bool = False


class RememberLoginRequest(BaseModel):
    remember_token: str


# ----------------- Tokens -----------------
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    remember_token: Optional[str] = None
    next_step: Optional[str] = None


# ----------------- OAuth -----------------
class OAuthTokenLogin(BaseModel):
    """Access token the frontend already obtained from the provider"""
    access_token: str


class SocialUser(BaseModel):
    provider: str
    provider_id: str
    email: str
    name: Optional[str] = None
