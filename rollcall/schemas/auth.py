"""Auth request schemas.

Fields are optional: the auth flow reports missing ones itself ("Please fill all fields.")
rather than letting validation answer with a generic error.
"""
from pydantic import BaseModel, EmailStr, field_validator

from rollcall.models.account import AccountRole


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class SignupRequest(BaseModel):
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    school_name: str | None = None
    address: str | None = None
    contact_person: str | None = None
    school_id: int | None = None
    email: EmailStr | None = None
    phone_number: str | None = None
    password: str | None = None
    confirm_password: str | None = None
    terms_agreed: bool = False

    @field_validator(
        "first_name", "middle_name", "last_name", "school_name", "address",
        "contact_person", "email", "phone_number", mode="before",
    )
    @classmethod
    def blank_is_missing(cls, v):
        return _blank_to_none(v)


class VerifyCodeRequest(BaseModel):
    email: EmailStr | None = None
    code: int | str | None = None  # numbers are accepted and zero-padded by the auth flow

    @field_validator("email", "code", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        return _blank_to_none(v)


class LoginRequest(BaseModel):
    user_key: str | None = None  # email or phone number
    password: str | None = None
    remember_user: bool = False


class CreatePasswordRequest(BaseModel):
    user_id: int | None = None
    password: str | None = None
    confirm_password: str | None = None


class ForgotPasswordRequest(BaseModel):
    user_type: str | None = None  # defaults to the router's account type
    email: EmailStr | None = None

    @field_validator("email", "user_type", mode="before")
    @classmethod
    def blank_is_missing(cls, v):
        return _blank_to_none(v)


class ResetPasswordRequest(BaseModel):
    token: str | None = None
    password: str | None = None
    confirm_password: str | None = None


class AccountResponse(BaseModel):
    id: int
    code: str
    role: AccountRole
    email: str
    phone_number: str | None = None
    name: str | None = None
