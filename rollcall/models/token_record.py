"""Persisted refresh and password-reset tokens."""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum as SQLEnum, Index
from sqlalchemy.sql import func

from rollcall.database import Base
from rollcall.models.account import AccountRole

PURPOSE_RENEW = "renew"
PURPOSE_FORGOT_PASSWORD = "forgot password"


def login_purpose(role: AccountRole) -> str:
    return f"{role.value} login"


class TokenRecord(Base):
    __tablename__ = "refresh_tokens"
    __table_args__ = (Index("ix_refresh_tokens_subject", "account_type", "account_id"),)

    id = Column(Integer, primary_key=True, index=True)
    # The signed token itself, stored verbatim
    token = Column(Text, nullable=False)
    account_id = Column(Integer, nullable=False)
    account_type = Column(SQLEnum(AccountRole), nullable=False)
    purpose = Column(String(50), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
