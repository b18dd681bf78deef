"""Auth endpoints, built once per account type by create_auth_router."""
from fastapi import APIRouter, Cookie, Depends, Response

from rollcall.config import Settings
from rollcall.dependencies import get_app_settings, get_auth_flow, require_roles
from rollcall.models.account import AccountRole
from rollcall.schemas.auth import (
    AccountResponse,
    CreatePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyCodeRequest,
)
from rollcall.services.accounts import account_code, account_display_name
from rollcall.services.auth_flow import AuthFlow
from rollcall.services.exceptions import PasswordMismatchError

REFRESH_COOKIE = "refreshToken"


def set_refresh_cookie(response: Response, settings: Settings, token: str, persistent: bool) -> None:
    """httpOnly refresh cookie. SameSite=None needs Secure, so insecure (dev) cookies fall back to Lax."""
    secure = settings.refresh_cookie_secure
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        httponly=True,
        secure=secure,
        samesite="none" if secure else "lax",
        path="/",
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60 if persistent else None,
    )


def account_to_response(account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        code=account_code(account),
        role=account.role,
        email=account.email,
        phone_number=account.phone_number,
        name=account_display_name(account),
    )


def create_auth_router(role: AccountRole, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[f"{role.value} auth"])

    @router.post("/sign-up", status_code=201)
    @router.post("/signup", status_code=201, include_in_schema=False)
    def sign_up(
        data: SignupRequest,
        response: Response,
        flow: AuthFlow = Depends(get_auth_flow),
        settings: Settings = Depends(get_app_settings),
    ):
        tokens = flow.signup(role, data.model_dump())
        set_refresh_cookie(response, settings, tokens.refresh_token, persistent=False)
        return {"message": "User registered successfully!", "data": tokens.as_data()}

    @router.post("/send-ver-code")
    def send_verification_code(data: SignupRequest, flow: AuthFlow = Depends(get_auth_flow)):
        dispatch = flow.request_code(role, data.model_dump())
        if dispatch.resent:
            message = "A new verification code has been sent to your email."
        else:
            message = "Verification code sent successfully to your email or spam."
        return {"message": message, "data": {"email": dispatch.email, "expiresAt": dispatch.expires_at.isoformat()}}

    @router.post("/compare-ver-code")
    def compare_verification_code(data: VerifyCodeRequest, flow: AuthFlow = Depends(get_auth_flow)):
        account = flow.confirm_code(data.email, data.code)
        return {
            "message": "Verification successful. User registered and welcome email sent.",
            "data": account_to_response(account).model_dump(mode="json"),
        }

    @router.post("/login")
    def login(
        data: LoginRequest,
        response: Response,
        flow: AuthFlow = Depends(get_auth_flow),
        settings: Settings = Depends(get_app_settings),
    ):
        tokens = flow.login(role, data.user_key, data.password)
        set_refresh_cookie(response, settings, tokens.refresh_token, persistent=data.remember_user)
        return {"message": "User Login Successful", "data": tokens.as_data()}

    @router.post("/create-password")
    def create_password(data: CreatePasswordRequest, flow: AuthFlow = Depends(get_auth_flow)):
        flow.set_password(role, data.user_id, data.password, data.confirm_password)
        return {"message": "Password Creation Successful", "data": None}

    @router.post("/refresh-token")
    def refresh_token(
        response: Response,
        token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
        flow: AuthFlow = Depends(get_auth_flow),
        settings: Settings = Depends(get_app_settings),
    ):
        tokens = flow.refresh(token)
        set_refresh_cookie(response, settings, tokens.refresh_token, persistent=True)
        return {"accessToken": tokens.access_token, "expiresAt": tokens.expires_at.isoformat()}

    @router.post("/forgot-password")
    def forgot_password(data: ForgotPasswordRequest, flow: AuthFlow = Depends(get_auth_flow)):
        flow.forgot_password(data.user_type or role, data.email)
        return {"message": "Password reset link sent.", "data": None}

    @router.post("/reset-password")
    def reset_password(data: ResetPasswordRequest, flow: AuthFlow = Depends(get_auth_flow)):
        if data.confirm_password is not None and data.confirm_password != data.password:
            raise PasswordMismatchError()
        flow.reset_password(data.token, data.password)
        return {"message": "Password reset successful!", "data": None}

    @router.get("/me", response_model=AccountResponse)
    def me(account=Depends(require_roles(role))):
        return account_to_response(account)

    return router
