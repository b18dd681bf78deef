"""Password hashing (bcrypt) and JWT issuing/verification (PyJWT)."""
import uuid
from datetime import datetime, timedelta
from typing import Callable

import bcrypt
import jwt

from rollcall.config import Settings
from rollcall.models.account import AccountRole
from rollcall.services.exceptions import InvalidTokenError, TokenExpiredError
from rollcall.utils.timezone import now_utc


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def verify_password(plain: str, hashed: str | None) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(_pwd_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


class TokenIssuer:
    """Mints and verifies the three token kinds, each with its own signing key."""

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = now_utc):
        self.settings = settings
        self.clock = clock

    @property
    def access_key(self) -> str:
        return self.settings.access_token_secret

    @property
    def refresh_key(self) -> str:
        return self.settings.refresh_token_secret

    @property
    def reset_key(self) -> str:
        return self.settings.reset_token_secret

    def _sign(self, claims: dict, key: str, lifetime: timedelta) -> tuple[str, datetime]:
        issued = self.clock()
        expires_at = issued + lifetime
        # jti keeps two tokens minted in the same second distinct
        payload = {**claims, "iat": issued, "exp": expires_at, "jti": uuid.uuid4().hex}
        raw = jwt.encode(payload, key, algorithm=self.settings.jwt_algorithm)
        return (raw if isinstance(raw, str) else raw.decode("utf-8")), expires_at

    def issue_access_token(self, subject_id: int, role: AccountRole) -> tuple[str, datetime]:
        return self._sign(
            {"id": subject_id, "role": role.value},
            self.access_key,
            timedelta(days=self.settings.access_token_expire_days),
        )

    def issue_refresh_token(self, subject_id: int, role: AccountRole) -> tuple[str, datetime]:
        return self._sign(
            {"id": subject_id, "role": role.value},
            self.refresh_key,
            timedelta(days=self.settings.refresh_token_expire_days),
        )

    def issue_reset_token(self, subject_id: int, account_type: AccountRole) -> tuple[str, datetime]:
        return self._sign(
            {"id": subject_id, "account_type": account_type.value},
            self.reset_key,
            timedelta(minutes=self.settings.reset_token_expire_minutes),
        )

    def verify_token(self, token: str | None, key: str) -> dict:
        """Decode `token`; TokenExpiredError when the embedded expiry passed, InvalidTokenError otherwise."""
        if not token or not isinstance(token, str):
            raise InvalidTokenError()
        now = self.clock()
        try:
            payload = jwt.decode(
                token.strip(),
                key,
                algorithms=[self.settings.jwt_algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e
        # Expiry is checked against the injected clock, not the wall clock
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidTokenError()
        if exp <= now.timestamp():
            raise TokenExpiredError()
        if not isinstance(payload.get("id"), int):
            raise InvalidTokenError()
        return payload

    def verify_access_token(self, token: str | None) -> dict:
        return self.verify_token(token, self.access_key)

    def verify_refresh_token(self, token: str | None) -> dict:
        return self.verify_token(token, self.refresh_key)

    def verify_reset_token(self, token: str | None) -> dict:
        return self.verify_token(token, self.reset_key)
