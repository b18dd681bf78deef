"""
Delete the account with the given email (and its token records and pending verification).
Usage: python scripts/delete_account_by_email.py <email> [user|school|participant]
Without a type, every account type is searched.
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from rollcall.config import get_settings
from rollcall.database import Database
from rollcall.models.account import AccountRole
from rollcall.services.accounts import AccountRepository
from rollcall.services.token_store import TokenStore
from rollcall.services.verification_store import VerificationStore


def main():
    email = (sys.argv[1] if len(sys.argv) > 1 else "").strip().lower()
    if not email:
        print("Usage: python scripts/delete_account_by_email.py <email> [user|school|participant]")
        sys.exit(1)
    try:
        roles = [AccountRole.parse(sys.argv[2])] if len(sys.argv) > 2 else list(AccountRole)
    except ValueError:
        print(f"Unknown account type: {sys.argv[2]}")
        sys.exit(1)

    database = Database(get_settings().database_url)
    db = database.session()
    try:
        deleted = 0
        for role in roles:
            account = AccountRepository(db, role).get_by_email(email)
            if not account:
                continue
            tokens = TokenStore(db).delete_for_subject(role, account.id)
            db.delete(account)
            deleted += 1
            print(f"Deleted {role.value}: {email} (id={account.id}, {tokens} token record(s))")
        pending = VerificationStore(db).get(email)
        if pending:
            db.delete(pending)
            print(f"Deleted pending verification for {email}")
        db.commit()
        if not deleted and not pending:
            print(f"No accounts found with email: {email}")
        else:
            print(f"Done. Deleted {deleted} account(s) with email: {email}")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
