"""Pending signup data: the account is created only after the emailed code is confirmed."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.sql import func

from rollcall.database import Base
from rollcall.models.account import AccountRole


class PendingVerification(Base):
    __tablename__ = "pending_verifications"

    id = Column(Integer, primary_key=True, index=True)
    # At most one pending record per email
    email = Column(String(255), unique=True, nullable=False, index=True)
    code_for = Column(SQLEnum(AccountRole), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Role-specific account fields (names, phone, school_name, ...), copied onto the account on confirm
    payload = Column(JSON, nullable=False, default=dict)

    code = Column(String(10), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    last_sent_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
