"""Utility script to register a principal and issue a bearer token for it."""

from __future__ import annotations

import argparse
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from heritage_realtime.domain.entities import Principal
from heritage_realtime.infrastructure.database import SessionLocal, initialize_database
from heritage_realtime.infrastructure.repositories import PrincipalRepository
from heritage_realtime.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for principal registration."""

    parser = argparse.ArgumentParser(
        description="Register a principal in the directory and print an access token.",
    )
    parser.add_argument("principal_id", help="Stable identifier of the principal")
    parser.add_argument(
        "--role",
        default="visitor",
        help="Role of the principal (default: visitor)",
    )
    parser.add_argument(
        "--tenant",
        default=None,
        help="Museum the principal belongs to (optional)",
    )
    parser.add_argument(
        "--display-name",
        default=None,
        help="Human readable name stored in the directory (optional)",
    )
    parser.add_argument(
        "--inactive",
        action="store_true",
        help="Register the principal as inactive; its tokens will be rejected.",
    )
    parser.add_argument(
        "--expires-minutes",
        type=int,
        default=None,
        help="Token lifetime in minutes (default: ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    return parser.parse_args()


def main() -> None:
    """Create or update a directory entry using the provided arguments."""

    args = parse_args()
    principal = Principal(id=args.principal_id, role=args.role.strip().lower(), tenant_id=args.tenant)

    initialize_database()

    session = SessionLocal()
    try:
        entry = PrincipalRepository(session).upsert(
            principal,
            display_name=args.display_name,
            is_active=not args.inactive,
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not store the principal: {exc}") from exc
    finally:
        session.close()

    expires = timedelta(minutes=args.expires_minutes) if args.expires_minutes else None
    token = create_access_token(principal, expires_delta=expires)
    print(
        "Principal registered:\n"
        f"  ID: {entry.id}\n"
        f"  Role: {entry.role}\n"
        f"  Tenant: {entry.tenant_id or '-'}\n"
        f"  Active: {'yes' if entry.is_active else 'no'}\n"
        f"  Token: {token}"
    )


if __name__ == "__main__":
    main()
