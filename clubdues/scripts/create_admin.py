"""
Create an admin account from the command line.

    python -m clubdues.scripts.create_admin --username admin --password 'S3cret!' --name Admin
"""
import argparse
import sys

from clubdues.data.base import SessionLocal, create_tables
from clubdues.data.repositories.user_repository import get_user_by_username
from clubdues.domain.errors import DomainError
from clubdues.domain.services.auth_service import normalize_username
from clubdues.domain.services.user_service import create_user


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Admin")
    parser.add_argument("--email", default=None)
    args = parser.parse_args(argv)

    create_tables()
    db = SessionLocal()
    try:
        existing = get_user_by_username(db, normalize_username(args.username))
        if existing:
            print(f"User with username '{existing.username}' already exists (role: {existing.role.value}).")
            return 0
        try:
            user = create_user(
                db,
                None,
                name=args.name,
                username=args.username,
                password=args.password,
                email=args.email,
                role="admin",
            )
        except DomainError as e:
            print(f"Failed to create admin: {e.message}", file=sys.stderr)
            return 1
        print(f"Admin created: id={user.id} username={user.username}")
        print("NOTE: Change the password after first login.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
