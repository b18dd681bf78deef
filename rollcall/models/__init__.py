"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from rollcall.models.account import AccountRole, User, School, Participant
from rollcall.models.pending_verification import PendingVerification
from rollcall.models.token_record import TokenRecord
from rollcall.models.notification import Notification

__all__ = [
    "AccountRole",
    "User",
    "School",
    "Participant",
    "PendingVerification",
    "TokenRecord",
    "Notification",
]
