"""Accounts: users, schools and participants, one table each."""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func

from rollcall.database import Base


class AccountRole(str, enum.Enum):
    user = "user"
    school = "school"
    participant = "participant"

    @classmethod
    def parse(cls, label: str | None) -> "AccountRole":
        """Accept 'user', 'users', ' School ' etc. Raises ValueError for anything else."""
        value = (label or "").strip().lower()
        if value.endswith("s") and value[:-1] in {r.value for r in cls}:
            value = value[:-1]
        return cls(value)


class AccountMixin:
    """Columns shared by every account table."""

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone_number = Column(String(50), unique=True, index=True, nullable=True)
    hashed_password = Column(String(255), nullable=True)
    terms_agreed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class User(AccountMixin, Base):
    __tablename__ = "users"
    role = AccountRole.user

    user_code = Column(String(20), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)


class School(AccountMixin, Base):
    __tablename__ = "schools"
    role = AccountRole.school

    school_code = Column(String(20), unique=True, index=True, nullable=False)
    school_name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=True)
    contact_person = Column(String(255), nullable=True)


class Participant(AccountMixin, Base):
    __tablename__ = "participants"
    role = AccountRole.participant

    participant_code = Column(String(20), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False)
    school_id = Column(Integer, nullable=True, index=True)
