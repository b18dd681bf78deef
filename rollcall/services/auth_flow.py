"""Signup, code verification, login, token rotation and password reset.

One AuthFlow instance serves one request. Every operation re-reads what it needs
from the stores, performs its writes and commits once; a failure anywhere rolls
the whole operation back. Emails are handed to the notifier after the commit, so
a delivery problem can never undo an account or token that was already created.
"""
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rollcall.config import Settings
from rollcall.models.account import AccountRole
from rollcall.models.token_record import PURPOSE_FORGOT_PASSWORD, login_purpose
from rollcall.services.accounts import AccountRepository, account_display_name
from rollcall.services.codes import generate_account_code, generate_code
from rollcall.services.exceptions import (
    AccountNotFoundError,
    AlreadyRegisteredError,
    ConflictError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingFieldsError,
    MissingTokenError,
    PasswordMismatchError,
    RateLimitedError,
    TokenExpiredError,
    TokenNotFoundError,
    TokenNotRecognizedError,
    ValidationFailedError,
)
from rollcall.services.notifications import (
    EmailMessage,
    password_reset_email,
    verification_code_email,
    welcome_email,
)
from rollcall.services.security import TokenIssuer, get_password_hash, verify_password
from rollcall.services.token_store import TokenStore
from rollcall.services.verification_store import VerificationStore
from rollcall.utils.timezone import ensure_utc, now_utc

logger = logging.getLogger(__name__)

# Fields that must be present (non-blank) to register each kind of account
REQUIRED_SIGNUP_FIELDS = {
    AccountRole.user: ("first_name", "last_name", "email", "phone_number", "password", "confirm_password"),
    AccountRole.school: ("school_name", "email", "phone_number", "password", "confirm_password"),
    AccountRole.participant: ("first_name", "last_name", "email", "password", "confirm_password"),
}


class Notifier(Protocol):
    def enqueue(self, message: EmailMessage) -> None: ...


@dataclass
class LoginTokens:
    role: AccountRole
    account_id: int
    access_token: str
    expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime

    def as_data(self) -> dict:
        return {
            "userType": self.role.value,
            "accessToken": self.access_token,
            "expiresAt": self.expires_at.isoformat(),
            "refreshToken": self.refresh_token,
        }


@dataclass
class CodeDispatch:
    email: str
    resent: bool
    expires_at: datetime


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class AuthFlow:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        issuer: TokenIssuer,
        notifier: Notifier,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.db = db
        self.settings = settings
        self.issuer = issuer
        self.notifier = notifier
        self.clock = clock
        self.pending = VerificationStore(db)
        self.tokens = TokenStore(db)

    def accounts(self, role: AccountRole) -> AccountRepository:
        return AccountRepository(self.db, role)

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Uniqueness violation, rolled back: %s", e.orig)
            raise ConflictError() from e
        except Exception:
            self.db.rollback()
            raise

    def _notify(self, message: EmailMessage) -> None:
        try:
            self.notifier.enqueue(message)
        except Exception:
            logger.exception("Notifier rejected email to=%s subject=%s", message.to, message.subject)

    def _hash(self, password: str) -> str:
        return get_password_hash(password, rounds=self.settings.bcrypt_rounds)

    def _validate_signup(self, role: AccountRole, data: dict) -> dict:
        """Required-field and password checks shared by direct signup and code requests."""
        data = {k: (v.strip() if isinstance(v, str) and k not in ("password", "confirm_password") else v) for k, v in data.items()}
        if any(_blank(data.get(f)) for f in REQUIRED_SIGNUP_FIELDS[role]):
            raise MissingFieldsError()
        if data["password"] != data["confirm_password"]:
            raise PasswordMismatchError()
        data["email"] = normalize_email(data["email"])
        return data

    def _ensure_not_registered(self, repo: AccountRepository, data: dict) -> None:
        if repo.get_by_email(data["email"]) is not None:
            raise AlreadyRegisteredError()
        phone = data.get("phone_number")
        if phone and repo.get_by_identifier(phone) is not None:
            raise AlreadyRegisteredError("Phone number already registered. Please log in.")

    def _new_account(self, repo: AccountRepository, email: str, hashed_password: str, fields: dict):
        code = generate_account_code(repo.code_prefix, repo.code_exists, self.settings.account_code_digits)
        return repo.create(email=email, hashed_password=hashed_password, code=code, fields=fields)

    def _issue_login_tokens(self, account) -> LoginTokens:
        """Mint an access/refresh pair and upsert the '<role> login' record for the refresh token."""
        role = account.role
        access, access_exp = self.issuer.issue_access_token(account.id, role)
        refresh, refresh_exp = self.issuer.issue_refresh_token(account.id, role)
        self.tokens.upsert(role, account.id, refresh, login_purpose(role), refresh_exp)
        return LoginTokens(role, account.id, access, access_exp, refresh, refresh_exp)

    # Direct signup

    def signup(self, role: AccountRole, data: dict) -> LoginTokens:
        data = self._validate_signup(role, data)
        repo = self.accounts(role)
        with self._transaction():
            self._ensure_not_registered(repo, data)
            account = self._new_account(repo, data["email"], self._hash(data["password"]), data)
            tokens = self._issue_login_tokens(account)
        logger.info("Registered %s id=%s via direct signup", role.value, account.id)
        self._notify(welcome_email(self.settings, account.email, account_display_name(account)))
        return tokens

    # Signup with emailed code

    def request_code(self, role: AccountRole, data: dict) -> CodeDispatch:
        data = self._validate_signup(role, data)
        repo = self.accounts(role)
        email = data["email"]
        now = self.clock()
        code = generate_code(self.settings.verification_code_length)
        expires_at = now + timedelta(minutes=self.settings.verification_code_expire_minutes)
        with self._transaction():
            self._ensure_not_registered(repo, data)
            record = self.pending.get(email)
            payload = {k: v for k, v in data.items() if k in repo.profile_fields and v is not None}
            if record is None:
                self.pending.create(
                    email=email,
                    code_for=role,
                    hashed_password=self._hash(data["password"]),
                    payload=payload,
                    code=code,
                    expires_at=expires_at,
                    sent_at=now,
                )
                resent = False
            else:
                cooldown = self.settings.verification_resend_cooldown_minutes
                elapsed_minutes = (now - ensure_utc(record.last_sent_at)).total_seconds() / 60
                if elapsed_minutes < cooldown:
                    wait = max(1, math.ceil(cooldown - elapsed_minutes))
                    logger.info("Code resend for %s refused, %d minute(s) left", email, wait)
                    raise RateLimitedError(wait)
                if record.code_for != role:
                    # A request for another account type takes the pending slot over entirely
                    logger.info("Pending signup for %s switched from %s to %s", email, record.code_for.value, role.value)
                    self.pending.reassign(
                        record, code_for=role, hashed_password=self._hash(data["password"]), payload=payload
                    )
                self.pending.refresh_code(record, code=code, expires_at=expires_at, sent_at=now)
                resent = True
        logger.info("Verification code %s to %s", "resent" if resent else "sent", email)
        self._notify(verification_code_email(self.settings, email, code))
        return CodeDispatch(email=email, resent=resent, expires_at=expires_at)

    def confirm_code(self, email: str | None, code: str | int | None):
        """Exchange a valid pending record for a real account. The record is deleted, so a code works once."""
        email = normalize_email(email)
        if isinstance(code, int):
            # JSON numbers lose leading zeros
            code = str(code).zfill(self.settings.verification_code_length)
        code = (code or "").strip()
        if not email or not code:
            raise MissingFieldsError()
        with self._transaction():
            record = self.pending.find_valid(email, code, self.clock())
            if record is None:
                raise InvalidCodeError()
            repo = self.accounts(record.code_for)
            if repo.get_by_email(email) is not None:
                raise AlreadyRegisteredError()
            account = self._new_account(repo, email, record.hashed_password, dict(record.payload or {}))
            self.pending.delete(record)
        logger.info("Registered %s id=%s via verification code", account.role.value, account.id)
        self._notify(welcome_email(self.settings, account.email, account_display_name(account)))
        return account

    # Login and passwords

    def login(self, role: AccountRole, identifier: str | None, password: str | None) -> LoginTokens:
        identifier = (identifier or "").strip()
        if not identifier:
            raise MissingFieldsError("Please provide either email or phone number")
        if not password:
            raise MissingFieldsError("Please fill all fields")
        by_email = "@" in identifier
        if by_email:
            identifier = normalize_email(identifier)
        repo = self.accounts(role)
        account = repo.get_by_identifier(identifier)
        if account is None:
            raise AccountNotFoundError()
        if not verify_password(password, account.hashed_password):
            logger.warning("Login failed for %s id=%s: wrong password", role.value, account.id)
            raise InvalidCredentialsError()
        matched = account.email if by_email else account.phone_number
        if matched != identifier:
            logger.warning("Login failed for %s id=%s: identifier matched the wrong field", role.value, account.id)
            raise InvalidCredentialsError()
        with self._transaction():
            tokens = self._issue_login_tokens(account)
        logger.info("Login %s id=%s", role.value, account.id)
        return tokens

    def set_password(self, role: AccountRole, account_id, password: str | None, confirm_password: str | None):
        if password != confirm_password:
            raise PasswordMismatchError("Passwords don't match")
        if account_id is None or not password:
            raise MissingFieldsError("Please fill all fields")
        repo = self.accounts(role)
        with self._transaction():
            account = repo.get_by_id(account_id)
            if account is None:
                raise AccountNotFoundError("User not registered")
            repo.update_password(account, self._hash(password))
        logger.info("Password set for %s id=%s", role.value, account.id)
        return account

    # Refresh rotation

    def refresh(self, refresh_token: str | None) -> LoginTokens:
        """Rotate-and-invalidate-rest: the presented token must be the subject's current one."""
        if not refresh_token:
            raise MissingTokenError()
        payload = self.issuer.verify_refresh_token(refresh_token)
        try:
            role = AccountRole.parse(payload.get("role"))
        except ValueError as e:
            raise InvalidTokenError() from e
        account_id = payload["id"]
        with self._transaction():
            if self.tokens.find_active(role, account_id, refresh_token.strip(), self.clock()) is None:
                logger.warning("Refresh token for %s id=%s not recognized", role.value, account_id)
                raise TokenNotRecognizedError()
            new_refresh, refresh_exp = self.issuer.issue_refresh_token(account_id, role)
            self.tokens.rotate(role, account_id, new_refresh, refresh_exp)
            access, access_exp = self.issuer.issue_access_token(account_id, role)
        return LoginTokens(role, account_id, access, access_exp, new_refresh, refresh_exp)

    # Forgot / reset password

    def forgot_password(self, account_type: str | AccountRole | None, email: str | None) -> str:
        """Store a reset token and email the link. Returns the token."""
        email = normalize_email(email)
        if _blank(account_type) or not email:
            raise MissingFieldsError("Please fill all fields")
        try:
            role = AccountRole.parse(account_type.value if isinstance(account_type, AccountRole) else account_type)
        except ValueError as e:
            raise ValidationFailedError("Invalid user type") from e
        repo = self.accounts(role)
        with self._transaction():
            account = repo.get_by_email(email)
            if account is None:
                raise AccountNotFoundError("Email not found")
            token, expires_at = self.issuer.issue_reset_token(account.id, role)
            self.tokens.insert(role, account.id, token, PURPOSE_FORGOT_PASSWORD, expires_at)
        logger.info("Password reset requested for %s id=%s", role.value, account.id)
        self._notify(password_reset_email(self.settings, account.email, token))
        return token

    def reset_password(self, token: str | None, password: str | None):
        token = (token or "").strip()
        if not token or not password:
            raise MissingFieldsError("Please fill all fields")
        payload = self.issuer.verify_reset_token(token)
        try:
            role = AccountRole.parse(payload.get("account_type"))
        except ValueError as e:
            raise InvalidTokenError() from e
        account_id = payload["id"]
        with self._transaction():
            record = self.tokens.latest_active_reset(role, account_id)
            if record is None:
                raise TokenNotFoundError()
            if ensure_utc(record.expires_at) <= self.clock():
                raise TokenExpiredError()
            if record.token != token:
                logger.warning("Reset token for %s id=%s does not match the stored one", role.value, account_id)
                raise InvalidTokenError(status_code=400)
            repo = self.accounts(role)
            account = repo.get_by_id(account_id)
            if account is None:
                raise AccountNotFoundError()
            repo.update_password(account, self._hash(password))
            self.tokens.revoke(record)
        logger.info("Password reset for %s id=%s", role.value, account_id)
        return account
