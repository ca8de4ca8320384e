"""PostgreSQL persistence: async client, ORM models and migration helpers."""

from .client import PostgreSQLClient
from .models import BaseModel

__all__ = ["BaseModel", "PostgreSQLClient"]
