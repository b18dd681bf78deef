"""Pending verification records, keyed by email."""
from datetime import datetime

from sqlalchemy.orm import Session

from rollcall.models.account import AccountRole
from rollcall.models.pending_verification import PendingVerification
from rollcall.utils.timezone import ensure_utc


class VerificationStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, email: str) -> PendingVerification | None:
        return self.db.query(PendingVerification).filter(PendingVerification.email == email).first()

    def create(
        self,
        *,
        email: str,
        code_for: AccountRole,
        hashed_password: str,
        payload: dict,
        code: str,
        expires_at: datetime,
        sent_at: datetime,
    ) -> PendingVerification:
        record = PendingVerification(
            email=email,
            code_for=code_for,
            hashed_password=hashed_password,
            payload=payload,
            code=code,
            expires_at=expires_at,
            last_sent_at=sent_at,
            used=False,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def refresh_code(self, record: PendingVerification, *, code: str, expires_at: datetime, sent_at: datetime) -> PendingVerification:
        record.code = code
        record.expires_at = expires_at
        record.last_sent_at = sent_at
        record.used = False
        self.db.flush()
        return record

    def reassign(self, record: PendingVerification, *, code_for: AccountRole, hashed_password: str, payload: dict) -> PendingVerification:
        record.code_for = code_for
        record.hashed_password = hashed_password
        record.payload = payload
        self.db.flush()
        return record

    def find_valid(self, email: str, code: str, now: datetime) -> PendingVerification | None:
        """Record matching email and code that is unused and not yet expired."""
        record = (
            self.db.query(PendingVerification)
            .filter(
                PendingVerification.email == email,
                PendingVerification.code == code,
                PendingVerification.used.is_(False),
            )
            .first()
        )
        if record is None or ensure_utc(record.expires_at) <= now:
            return None
        return record

    def delete(self, record: PendingVerification) -> None:
        self.db.delete(record)
        self.db.flush()

    def purge_expired(self, now: datetime) -> int:
        return (
            self.db.query(PendingVerification)
            .filter(PendingVerification.expires_at < now)
            .delete(synchronize_session=False)
        )
