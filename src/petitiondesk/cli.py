"""Operator command line.

Administrators cannot be created through the API. This command creates one,
or with --promote turns an existing account into an administrator and sets
its password.

Usage:
    petitiondesk-admin create-admin --email admin@example.org --name "Ward Office"

The password is read from PETITIONDESK_ADMIN_PASSWORD when set, otherwise
prompted for.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import os
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from petitiondesk.db.models import UserRole
from petitiondesk.services.auth import WeakPasswordError, hash_password
from petitiondesk.services.identity import EmailAlreadyRegisteredError, IdentityService
from petitiondesk.services.security_events import SecurityEventLogger, create_system_actor

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from petitiondesk.core.config import AuthSettings
    from petitiondesk.db.models import User

logger = logging.getLogger(__name__)

PASSWORD_ENV_VAR = "PETITIONDESK_ADMIN_PASSWORD"  # noqa: S105 - variable name, not a secret


async def create_admin(
    session: AsyncSession,
    auth_settings: AuthSettings,
    *,
    email: str,
    name: str | None,
    password: str,
    promote: bool = False,
) -> tuple[User, bool]:
    """Create an administrator account, or promote an existing one.

    Returns:
        The account and whether it was newly created.

    Raises:
        WeakPasswordError: If the password is shorter than configured.
        EmailAlreadyRegisteredError: If the address exists and promote is False.
    """
    if len(password) < auth_settings.min_password_length:
        raise WeakPasswordError(auth_settings.min_password_length)

    identity = IdentityService(session)
    password_hash = hash_password(password, rounds=auth_settings.bcrypt_rounds)
    events = SecurityEventLogger()

    existing = await identity.get_by_email(email)
    if existing is not None:
        if not promote:
            raise EmailAlreadyRegisteredError(existing.email)
        existing.role = UserRole.ADMIN
        existing.password_hash = password_hash
        if name:
            existing.name = name
        existing.updated_at = datetime.now(UTC)
        await session.flush()
        events.log_admin_action(
            actor=create_system_actor("cli"),
            action="promote_admin",
            target_type="user",
            target_id=str(existing.user_id),
        )
        return existing, False

    user = await identity.create_user(
        email=email,
        name=name,
        password_hash=password_hash,
        role=UserRole.ADMIN,
    )
    events.log_account_created(
        actor=create_system_actor("cli"),
        user_id=str(user.user_id),
        role=UserRole.ADMIN.value,
    )
    return user, True


async def _run_create_admin(args: argparse.Namespace, password: str) -> int:
    from petitiondesk.core.settings import get_settings
    from petitiondesk.db import close_engine, get_database

    settings = get_settings()
    try:
        async with get_database().transaction() as session:
            user, created = await create_admin(
                session,
                settings.auth,
                email=args.email,
                name=args.name,
                password=password,
                promote=args.promote,
            )
    finally:
        await close_engine()

    verb = "Created" if created else "Promoted"
    print(f"{verb} administrator {user.email} ({user.user_id})")
    return 0


def _read_password() -> str:
    password = os.environ.get(PASSWORD_ENV_VAR)
    if password:
        return password
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("Passwords do not match", file=sys.stderr)
        raise SystemExit(1)
    return password


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="petitiondesk-admin",
        description="PetitionDesk operator commands",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-admin", help="Create an administrator account")
    create.add_argument("--email", required=True, help="Administrator email address")
    create.add_argument("--name", default=None, help="Display name")
    create.add_argument(
        "--promote",
        action="store_true",
        help="Promote the account if the email is already registered",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    args = build_parser().parse_args(argv)

    if args.command == "create-admin":
        password = _read_password()
        try:
            return asyncio.run(_run_create_admin(args, password))
        except WeakPasswordError as e:
            print(str(e), file=sys.stderr)
            return 1
        except EmailAlreadyRegisteredError:
            print(
                f"{args.email} is already registered; use --promote to make it an administrator",
                file=sys.stderr,
            )
            return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
