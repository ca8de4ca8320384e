"""Database migration utilities using Alembic.

Migration scripts live under migrations/ at the project root and are driven
by alembic.ini there.
"""

from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine

from .models import BaseModel

PROJECT_ROOT = Path(__file__).parents[5]


async def create_all_tables(engine: AsyncEngine) -> None:
    """Create every table declared on BaseModel.

    Intended for tests and throwaway databases; deployments use Alembic.

    Args:
        engine: Async SQLAlchemy engine
    """
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)


def get_alembic_config(alembic_ini_path: Optional[Path] = None) -> Config:
    """Load alembic.ini, defaulting to the one at the project root."""
    if alembic_ini_path is None:
        alembic_ini_path = PROJECT_ROOT / "alembic.ini"

    config = Config(str(alembic_ini_path))
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    return config


def run_migrations_upgrade(revision: str = "head") -> None:
    """Upgrade the schema to revision (default: head)."""
    command.upgrade(get_alembic_config(), revision)


def run_migrations_downgrade(revision: str) -> None:
    """Downgrade the schema to revision."""
    command.downgrade(get_alembic_config(), revision)
