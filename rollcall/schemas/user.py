"""User CRUD schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    first_name: str
    middle_name: str | None = None
    last_name: str
    email: EmailStr
    phone_number: str

    @field_validator("first_name", "last_name", "phone_number")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Please fill all required fields")
        return v


class UserFields(BaseModel):
    """Writable profile fields; anything else in the body is ignored."""
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone_number: str | None = None


class UserUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    changes: UserFields = Field(alias="fields")


class UserResponse(BaseModel):
    id: int
    user_code: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    email: str
    phone_number: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    totalUsers: int
    totalPages: int
    currentPage: int
    pageSize: int
