"""User CRUD with paginated listing."""
import logging
import math
from contextlib import contextmanager

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rollcall.config import Settings
from rollcall.database import get_db
from rollcall.dependencies import get_app_settings
from rollcall.models.account import AccountRole, User
from rollcall.schemas.user import Pagination, UserCreate, UserResponse, UserUpdate
from rollcall.services.accounts import AccountRepository
from rollcall.services.codes import generate_account_code
from rollcall.services.exceptions import AlreadyRegisteredError, ConflictError, NotFoundError
from rollcall.services.token_store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", status_code=404)
    return user


@contextmanager
def _writing(db: Session):
    """Commit on success; a unique-constraint violation (at flush or commit) becomes ConflictError."""
    try:
        yield
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("User write rejected by unique constraint: %s", e.orig)
        raise ConflictError("A user with this email or phone number already exists") from e


def _dump(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.get("/all")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    name: str | None = None,
    db: Session = Depends(get_db),
):
    q = db.query(User)
    if name and name.strip():
        pattern = f"%{name.strip().lower()}%"
        q = q.filter(
            or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.middle_name).like(pattern),
                func.lower(User.last_name).like(pattern),
            )
        )
    total = q.count()
    users = q.order_by(User.id).offset((page - 1) * limit).limit(limit).all()
    pagination = Pagination(
        totalUsers=total,
        totalPages=math.ceil(total / limit),
        currentPage=page,
        pageSize=limit,
    )
    return {
        "success": True,
        "message": "Users fetched successfully",
        "data": {"pagination": pagination.model_dump(), "users": [_dump(u) for u in users]},
    }


@router.post("", status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    email = data.email.strip().lower()
    repo = AccountRepository(db, AccountRole.user)
    if repo.get_by_email(email):
        raise AlreadyRegisteredError("User with this email already exists")
    code = generate_account_code(repo.code_prefix, repo.code_exists, settings.account_code_digits)
    # No password yet: the user sets one through /create-password
    with _writing(db):
        user = repo.create(email=email, hashed_password=None, code=code, fields=data.model_dump(exclude={"email"}))
    db.refresh(user)
    logger.info("Created user id=%s", user.id)
    return {"success": True, "message": "User created successfully", "data": _dump(user)}


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = _get_user_or_404(db, user_id)
    return {"success": True, "message": "User fetched successfully", "data": _dump(user)}


@router.put("/{user_id}")
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db)):
    user = _get_user_or_404(db, user_id)
    changes = data.changes.model_dump(exclude_unset=True)
    with _writing(db):
        for key, value in changes.items():
            if key in ("first_name", "last_name", "email") and not (value or "").strip():
                continue
            if key in ("middle_name", "phone_number") and not (value or "").strip():
                # unique column: several blank phones must all be NULL, not ""
                value = None
            if key == "email" and value:
                value = value.strip().lower()
            setattr(user, key, value)
    db.refresh(user)
    return {"success": True, "message": "User updated successfully", "data": _dump(user)}


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    user = _get_user_or_404(db, user_id)
    removed = TokenStore(db).delete_for_subject(AccountRole.user, user.id)
    with _writing(db):
        db.delete(user)
    logger.info("Deleted user id=%s (and %d token record(s))", user_id, removed)
    return {"success": True, "message": "User deleted successfully", "data": None}
