"""Refresh and reset token records.

Business rule: at most one active record per (account, purpose), kept either by
updating in place (login) or by deleting every record for the subject and
inserting a fresh one (rotation).
"""
import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from rollcall.models.account import AccountRole
from rollcall.models.token_record import TokenRecord, PURPOSE_RENEW, PURPOSE_FORGOT_PASSWORD
from rollcall.utils.timezone import ensure_utc

logger = logging.getLogger(__name__)


class TokenStore:
    def __init__(self, db: Session):
        self.db = db

    def _subject(self, account_type: AccountRole, account_id: int):
        return self.db.query(TokenRecord).filter(
            TokenRecord.account_type == account_type,
            TokenRecord.account_id == account_id,
        )

    def latest(self, account_type: AccountRole, account_id: int, purpose: str) -> TokenRecord | None:
        return (
            self._subject(account_type, account_id)
            .filter(TokenRecord.purpose == purpose)
            .order_by(TokenRecord.expires_at.desc(), TokenRecord.id.desc())
            .first()
        )

    def insert(self, account_type: AccountRole, account_id: int, token: str, purpose: str, expires_at: datetime) -> TokenRecord:
        record = TokenRecord(
            token=token,
            account_id=account_id,
            account_type=account_type,
            purpose=purpose,
            expires_at=expires_at,
            revoked=False,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def upsert(self, account_type: AccountRole, account_id: int, token: str, purpose: str, expires_at: datetime) -> TokenRecord:
        """Update the latest record for (subject, purpose) in place, or insert one."""
        record = self.latest(account_type, account_id, purpose)
        if record is None:
            return self.insert(account_type, account_id, token, purpose, expires_at)
        record.token = token
        record.expires_at = expires_at
        record.revoked = False
        self.db.flush()
        return record

    def find_active(self, account_type: AccountRole, account_id: int, token: str, now: datetime) -> TokenRecord | None:
        """Non-revoked, unexpired record for the subject holding exactly this token string."""
        record = (
            self._subject(account_type, account_id)
            .filter(TokenRecord.token == token, TokenRecord.revoked.is_(False))
            .first()
        )
        if record is None or ensure_utc(record.expires_at) <= now:
            return None
        return record

    def rotate(self, account_type: AccountRole, account_id: int, token: str, expires_at: datetime) -> TokenRecord:
        """Delete every record for the subject, then insert one 'renew' record."""
        removed = self._subject(account_type, account_id).delete(synchronize_session=False)
        logger.info("Rotated refresh token for %s id=%s (removed %d record(s))", account_type.value, account_id, removed)
        return self.insert(account_type, account_id, token, PURPOSE_RENEW, expires_at)

    def latest_active_reset(self, account_type: AccountRole, account_id: int) -> TokenRecord | None:
        return (
            self._subject(account_type, account_id)
            .filter(TokenRecord.purpose == PURPOSE_FORGOT_PASSWORD, TokenRecord.revoked.is_(False))
            .order_by(TokenRecord.expires_at.desc(), TokenRecord.id.desc())
            .first()
        )

    def revoke(self, record: TokenRecord) -> None:
        record.revoked = True
        self.db.flush()

    def delete_for_subject(self, account_type: AccountRole, account_id: int) -> int:
        return self._subject(account_type, account_id).delete(synchronize_session=False)

    def purge_stale(self, now: datetime) -> int:
        return (
            self.db.query(TokenRecord)
            .filter(or_(TokenRecord.revoked.is_(True), TokenRecord.expires_at < now))
            .delete(synchronize_session=False)
        )
