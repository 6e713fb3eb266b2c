from datetime import datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, EmailStr


# =========================
# Enums
# =========================
class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class AccountType(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


# =========================
# USER
# =========================
class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=120)


class CreateUser(UserBase):
    password: str = Field(min_length=8)
    company_name: str = Field(min_length=1, max_length=200)
    base_currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(UserBase):
    id: str
    role: UserRole
    company_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =========================
# CHAT
# =========================
class ChatRequest(BaseModel):
    question: str = Field(max_length=2000)


class ChatResponse(BaseModel):
    response: str
