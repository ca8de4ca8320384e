#!/usr/bin/env python3
"""Bootstrap Plura with a super admin and issue an initial admin token.

Creates (or updates) a user with a super-admin console membership and
prints an admin-token cookie value ready for the admin console.

Usage:
    python scripts/bootstrap.py
    python scripts/bootstrap.py --name "Alice" --email alice@example.com

Options:
    --name          Admin display name  (default: Platform Admin)
    --email         Admin email         (default: admin@localhost)
    --password      Admin password      (default: auto-generated)
    --force         Overwrite an existing user's password without prompting
    --skip-schema   Do not create missing tables
"""

import argparse
import asyncio
import secrets
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def _generate_password() -> str:
    """Generate a random 20-character URL-safe password."""
    return secrets.token_urlsafe(15)


def _box(lines: list[str], title: str = "") -> str:
    """Return a simple ASCII box around the given lines."""
    width = max(len(line) for line in lines + [title]) + 25
    border = "─" * width
    out = [f"╔{border}╗"]
    if title:
        pad = width - len(title) - 2
        out.append(f"║  {title}{' ' * pad}║")
        out.append(f"╠{border}╣")
    for line in lines:
        pad = width - len(line) - 2
        out.append(f"║  {line}{' ' * pad}║")
    out.append(f"╚{border}╝")
    return "\n".join(out)


async def _upsert_super_admin(
    *,
    client,
    name: str,
    email: str,
    password: str,
    force: bool,
    step_num: int,
) -> str:
    """Create or update the user and its super-admin membership.

    Returns:
        User id
    """
    from sqlalchemy import select

    from plura.infrastructure.persistence.postgresql.models import AdminUser, User
    from plura.service.auth_service import hash_password

    print(f"{step_num}. Creating super admin...")
    password_hash = hash_password(password)

    async with client.session() as session:
        user = (
            await session.execute(select(User).where(User.email == email))
        ).scalar_one_or_none()

        if user is None:
            user = User(
                name=name,
                email=email,
                role="AGENCY_OWNER",
                password_hash=password_hash,
            )
            session.add(user)
            await session.flush()
            print(f"   ✓ User created: {email}")
        elif force or input(
            f"   User '{email}' already exists. Update password? (Y/n): "
        ).strip().lower() != "n":
            user.password_hash = password_hash
            print(f"   ✓ Password updated for existing user: {email}")
        else:
            print("   Skipping password update.")

        membership = (
            await session.execute(select(AdminUser).where(AdminUser.user_id == user.id))
        ).scalar_one_or_none()
        if membership is None:
            session.add(AdminUser(user_id=user.id, permissions=[], is_super_admin=True))
        else:
            membership.is_super_admin = True

        await session.commit()
        print("   ✓ Super admin membership granted")
        return str(user.id)


async def bootstrap(
    name: str,
    email: str,
    password: str,
    force: bool,
    skip_schema: bool,
) -> None:
    """Bootstrap a Plura installation with a super admin and admin token."""
    from plura.config.app_settings import AppSettings
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient
    from plura.infrastructure.persistence.postgresql.migrations import create_all_tables
    from plura.repository.user_repository import UserRepository
    from plura.service.admin_auth_service import AdminAuthService

    settings = AppSettings()
    pg_client = PostgreSQLClient(settings.postgres_url)

    print("=== Plura Bootstrap ===\n")
    db_host = settings.postgres_url.split("@")[-1]
    print(f"  Database : {db_host}")
    print(f"  Email    : {email}")
    print()

    try:
        print("1. Connecting to PostgreSQL...")
        await pg_client.connect()
        print("   ✓ Connected")

        if skip_schema:
            print("2. Skipping schema creation")
        else:
            print("2. Ensuring schema exists...")
            await create_all_tables(pg_client.engine)
            print("   ✓ Schema ready")

        user_id = await _upsert_super_admin(
            client=pg_client,
            name=name,
            email=email,
            password=password,
            force=force,
            step_num=3,
        )

        print("4. Issuing admin token...")
        admin_auth = AdminAuthService(
            user_repo=UserRepository(pg_client),
            secret=settings.admin_jwt_secret,
            ttl_hours=settings.admin_token_expire_hours,
        )
        token = admin_auth.create_admin_token(user_id, email, is_super_admin=True)
        print("   ✓ Token issued")

        summary = [
            f"User ID   : {user_id}",
            f"Email     : {email}",
            "Role      : super admin",
            f"Password  : {password}",
            "admin-token cookie (store securely, it is shown once):",
        ]
        print()
        print(_box(summary, title="Credentials"))
        print(token)
        print()

    except Exception as e:
        print(f"\n✗ Error: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
    finally:
        await pg_client.disconnect()


def main() -> None:
    """Entry point for the bootstrap CLI."""
    parser = argparse.ArgumentParser(
        description="Bootstrap Plura with a super admin and initial admin token"
    )
    parser.add_argument("--name", default="Platform Admin", help="Admin display name")
    parser.add_argument("--email", default="admin@localhost", help="Admin email")
    parser.add_argument(
        "--password",
        default=None,
        help="Admin password (default: auto-generated)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing user's password without prompting",
    )
    parser.add_argument(
        "--skip-schema",
        action="store_true",
        help="Do not create missing tables (use after alembic upgrade)",
    )
    args = parser.parse_args()

    asyncio.run(
        bootstrap(
            name=args.name,
            email=args.email,
            password=args.password or _generate_password(),
            force=args.force,
            skip_schema=args.skip_schema,
        )
    )


if __name__ == "__main__":
    main()
