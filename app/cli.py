"""CLI commands for Gutsy."""

import argparse
import getpass
import sys

import bcrypt
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.user import User
from app.seed_data import seed_demo_logs, seed_reference_data


def create_user(email: str, password: str | None = None, is_admin: bool = False) -> None:
    """Create a user account."""
    db: Session = SessionLocal()

    try:
        existing = db.query(User).filter(User.email == email.lower()).first()
        if existing:
            print(f"Error: User with email '{email}' already exists.")
            sys.exit(1)

        if not password:
            password = getpass.getpass("Password: ")
            password_confirm = getpass.getpass("Confirm password: ")
            if password != password_confirm:
                print("Error: Passwords do not match.")
                sys.exit(1)

        if len(password) < 8:
            print("Error: Password must be at least 8 characters.")
            sys.exit(1)

        password_hash = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt()
        ).decode("utf-8")
        user = User(email=email.lower(), password_hash=password_hash, is_admin=is_admin)
        db.add(user)
        db.commit()

        print(f"User created successfully: {email}")

    finally:
        db.close()


def seed_reference() -> None:
    """Insert canonical ingredients and symptoms."""
    db: Session = SessionLocal()

    try:
        created = seed_reference_data(db)
        print(
            "Seeded {ingredients} ingredients, {aliases} aliases, {symptoms} symptoms.".format(
                **created
            )
        )
    finally:
        db.close()


def seed_demo(email: str) -> None:
    """Load the demo logs for an existing user."""
    db: Session = SessionLocal()

    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            print(f"Error: No user with email '{email}'.")
            sys.exit(1)

        count = seed_demo_logs(db, user)
        print(f"Created {count} demo logs for {email}. Analyse 2026-01-01 to 2026-01-12.")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Gutsy CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_user_parser = subparsers.add_parser("create-user", help="Create a user")
    create_user_parser.add_argument("--email", required=True, help="Email address")
    create_user_parser.add_argument(
        "--password", help="Password (will prompt if not provided)"
    )
    create_user_parser.add_argument(
        "--admin", action="store_true", help="Grant admin rights"
    )

    subparsers.add_parser(
        "seed-reference-data", help="Insert canonical ingredients and symptoms"
    )

    seed_demo_parser = subparsers.add_parser(
        "seed-demo-logs", help="Load a demo data set for a user"
    )
    seed_demo_parser.add_argument("--email", required=True, help="Existing user's email")

    args = parser.parse_args()

    if args.command == "create-user":
        create_user(args.email, args.password, is_admin=args.admin)
    elif args.command == "seed-reference-data":
        seed_reference()
    elif args.command == "seed-demo-logs":
        seed_demo(args.email)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
