from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, EmailStr, field_validator

T = TypeVar("T")


class RegisterRequest(BaseModel):
    name: str = ""
    email: Optional[EmailStr] = None
    password: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_missing(cls, value):
        return None if isinstance(value, str) and not value.strip() else value


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class NoteCreate(BaseModel):
    title: str = ""
    content: str = ""
    tags: Optional[List[str]] = None


class NoteUpdate(BaseModel):
    """Partial update: fields left out (or null) keep their stored value."""
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    created_at: datetime


class SessionOut(BaseModel):
    user: UserOut
    token: str


class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    tags: List[str]
    created_at: datetime
    updated_at: datetime


class DeletedOut(BaseModel):
    id: str


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""
    success: bool = True
    message: Optional[str] = None
    count: Optional[int] = None
    data: Optional[T] = None
