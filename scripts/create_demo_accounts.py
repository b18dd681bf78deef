"""
Create one demo account per type (user, school, participant) without email verification.
Use when no email provider is configured so you can log in and try the API.

Run from project root:
  python scripts/create_demo_accounts.py

Credentials are printed at the end.
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from rollcall.config import get_settings
from rollcall.database import Database
from rollcall.models.account import AccountRole
from rollcall.services.accounts import AccountRepository
from rollcall.services.codes import generate_account_code
from rollcall.services.security import get_password_hash

DEMO_PASSWORD = "Password123!"

DEMO_ACCOUNTS = {
    AccountRole.user: {
        "email": "user@rollcall.demo",
        "first_name": "Demo",
        "last_name": "User",
        "phone_number": "5550000001",
    },
    AccountRole.school: {
        "email": "school@rollcall.demo",
        "school_name": "Demo High School",
        "phone_number": "5550000002",
    },
    AccountRole.participant: {
        "email": "participant@rollcall.demo",
        "first_name": "Demo",
        "last_name": "Participant",
        "phone_number": "5550000003",
    },
}


def main():
    settings = get_settings()
    database = Database(settings.database_url)
    database.create_all()
    db = database.session()
    try:
        for role, fields in DEMO_ACCOUNTS.items():
            repo = AccountRepository(db, role)
            email = fields["email"]
            if repo.get_by_email(email):
                print(f"{role.value.title()} already exists: {email}")
                continue
            code = generate_account_code(repo.code_prefix, repo.code_exists, settings.account_code_digits)
            repo.create(
                email=email,
                hashed_password=get_password_hash(DEMO_PASSWORD, rounds=settings.bcrypt_rounds),
                code=code,
                fields=fields,
            )
            print(f"Created {role.value}: {email} ({code})")
        db.commit()

        print("\n--- Demo accounts ---")
        for role, fields in DEMO_ACCOUNTS.items():
            print(f"{role.value.title()}:")
            print(f"  Email:    {fields['email']}")
            print(f"  Password: {DEMO_PASSWORD}")
        print("\nDone.")
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
