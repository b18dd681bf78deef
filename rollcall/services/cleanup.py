"""Hourly purge of spent token records and expired pending verifications."""
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from rollcall.services.token_store import TokenStore
from rollcall.services.verification_store import VerificationStore
from rollcall.utils.timezone import now_utc

logger = logging.getLogger(__name__)


def purge_stale_records(db: Session, now: datetime) -> tuple[int, int]:
    """Delete revoked/expired token records and expired pending verifications. Returns both counts."""
    tokens = TokenStore(db).purge_stale(now)
    pending = VerificationStore(db).purge_expired(now)
    db.commit()
    return tokens, pending


def run_cleanup_job(session_factory: Callable[[], Session], clock: Callable[[], datetime] = now_utc) -> None:
    db = session_factory()
    try:
        tokens, pending = purge_stale_records(db, clock())
        if tokens or pending:
            logger.info("Cleanup: deleted %d token record(s), %d expired pending verification(s).", tokens, pending)
    except Exception:
        db.rollback()
        logger.exception("Cleanup job failed")
    finally:
        db.close()
