"""Shared dependencies: DB session, settings, auth flow, current account."""
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from rollcall.config import Settings
from rollcall.database import get_db
from rollcall.models.account import AccountRole
from rollcall.services.accounts import AccountRepository
from rollcall.services.auth_flow import AuthFlow
from rollcall.services.exceptions import (
    AccountNotFoundError,
    ForbiddenError,
    InvalidTokenError,
    TokenExpiredError,
    UnauthenticatedError,
)
from rollcall.services.security import TokenIssuer

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_auth_flow(request: Request, db: Session = Depends(get_db)) -> AuthFlow:
    state = request.app.state
    return AuthFlow(db, state.settings, state.token_issuer, state.notifier, clock=state.clock)


def get_current_account(
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
):
    if not credentials or not (credentials.credentials or "").strip():
        raise UnauthenticatedError("Not authorized, no token provided")
    try:
        payload = issuer.verify_access_token(credentials.credentials)
    except TokenExpiredError:
        raise UnauthenticatedError("Token expired")
    except InvalidTokenError:
        raise ForbiddenError("Not authorized, invalid token")
    try:
        role = AccountRole.parse(payload.get("role"))
    except ValueError:
        raise ForbiddenError("Not authorized, invalid token")
    account = AccountRepository(db, role).get_by_id(payload["id"])
    if account is None:
        raise AccountNotFoundError("Account no longer exists", status_code=401)
    return account


def require_roles(*roles: AccountRole):
    """Dependency factory: current account must have one of `roles`."""

    def checker(account=Depends(get_current_account)):
        if roles and account.role not in roles:
            raise ForbiddenError()
        return account

    return checker
