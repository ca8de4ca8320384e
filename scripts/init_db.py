#!/usr/bin/env python3
"""Initialize the Plura PostgreSQL database via Alembic migrations.

Runs all pending migrations, the same as `alembic upgrade head`, using the
alembic.ini at the project root.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --revision 0001
    python scripts/init_db.py --downgrade --revision base
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def run_migrations(revision: str = "head", downgrade: bool = False) -> None:
    """Move the database to the given revision."""
    from plura.infrastructure.persistence.postgresql.migrations import (
        run_migrations_downgrade,
        run_migrations_upgrade,
    )

    print("=== Plura Database Initialization ===\n")
    print(f"Running Alembic migrations (target: {revision})...")

    try:
        if downgrade:
            run_migrations_downgrade(revision)
        else:
            run_migrations_upgrade(revision)
    except Exception as e:
        print(f"\n✗ Migration failed: {e}")
        sys.exit(1)

    print("\n=== Database initialization complete! ===\n")
    print("Next step: bootstrap a super admin (first run only):")
    print("  python scripts/bootstrap.py --skip-schema\n")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Apply Plura database migrations")
    parser.add_argument("--revision", default="head", help="Target revision")
    parser.add_argument(
        "--downgrade", action="store_true", help="Downgrade to --revision instead"
    )
    args = parser.parse_args()
    run_migrations(args.revision, args.downgrade)
