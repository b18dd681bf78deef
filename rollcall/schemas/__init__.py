from rollcall.schemas.auth import (
    SignupRequest, VerifyCodeRequest, LoginRequest, CreatePasswordRequest,
    ForgotPasswordRequest, ResetPasswordRequest, AccountResponse,
)
from rollcall.schemas.user import UserCreate, UserUpdate, UserResponse, Pagination
from rollcall.schemas.notification import NotificationCreate, NotificationResponse
