"""Account repositories: one typed repository per AccountRole, no table names built from strings."""
from sqlalchemy import or_
from sqlalchemy.orm import Session

from rollcall.models.account import AccountRole, User, School, Participant

_MODELS = {
    AccountRole.user: User,
    AccountRole.school: School,
    AccountRole.participant: Participant,
}

_CODE_PREFIX = {
    AccountRole.user: "U",
    AccountRole.school: "S",
    AccountRole.participant: "P",
}

# Columns a signup payload may set, per role; everything else is ignored
_PROFILE_FIELDS = {
    AccountRole.user: ("first_name", "middle_name", "last_name", "phone_number", "terms_agreed"),
    AccountRole.school: ("school_name", "address", "contact_person", "phone_number", "terms_agreed"),
    AccountRole.participant: ("first_name", "middle_name", "last_name", "phone_number", "school_id", "terms_agreed"),
}


class AccountRepository:
    def __init__(self, db: Session, role: AccountRole):
        self.db = db
        self.role = role
        self.model = _MODELS[role]

    @property
    def code_prefix(self) -> str:
        return _CODE_PREFIX[self.role]

    @property
    def code_column(self):
        return getattr(self.model, f"{self.role.value}_code")

    @property
    def profile_fields(self) -> tuple[str, ...]:
        return _PROFILE_FIELDS[self.role]

    def get_by_id(self, account_id):
        return self.db.query(self.model).filter(self.model.id == account_id).first()

    def get_by_email(self, email: str):
        return self.db.query(self.model).filter(self.model.email == email).first()

    def get_by_identifier(self, identifier: str):
        """Match on email OR phone number."""
        return (
            self.db.query(self.model)
            .filter(or_(self.model.email == identifier, self.model.phone_number == identifier))
            .first()
        )

    def code_exists(self, code: str) -> bool:
        return self.db.query(self.model.id).filter(self.code_column == code).first() is not None

    def create(self, *, email: str, hashed_password: str, code: str, fields: dict):
        values = {k: v for k, v in fields.items() if k in self.profile_fields}
        account = self.model(email=email, hashed_password=hashed_password, **values)
        setattr(account, self.code_column.key, code)
        self.db.add(account)
        self.db.flush()
        return account

    def update_password(self, account, hashed_password: str):
        account.hashed_password = hashed_password
        self.db.flush()
        return account


def account_code(account) -> str:
    return getattr(account, f"{account.role.value}_code")


def account_display_name(account) -> str:
    if account.role == AccountRole.school:
        return account.school_name
    return " ".join(p for p in (account.first_name, account.last_name) if p)
