"""Connectivity checks against databases registered by tenants.

Each check opens a throwaway engine without pooling, lists the public
tables and disposes of the engine again.
"""

import asyncio
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

ASYNC_DRIVER = "postgresql+asyncpg"

PUBLIC_TABLES_QUERY = text(
    "SELECT table_name FROM information_schema.tables "
    "WHERE table_schema = 'public' AND table_type = 'BASE TABLE' "
    "ORDER BY table_name"
)


def build_url(
    connection_string: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    database: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> URL:
    """Build an asyncpg URL from a connection string or discrete parts.

    A connection string wins over the parts; its driver is replaced so
    plain postgresql:// strings work.

    Raises:
        sqlalchemy.exc.ArgumentError: Unparseable connection string
    """
    if connection_string:
        return make_url(connection_string).set(drivername=ASYNC_DRIVER)
    return URL.create(
        ASYNC_DRIVER,
        username=username,
        password=password,
        host=host,
        port=port,
        database=database,
    )


async def list_public_tables(url: URL, timeout: float) -> List[str]:
    """Connect and return the names of the public base tables.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: Connection or query failed
        OSError: Host unreachable
        asyncio.TimeoutError: No answer within timeout seconds
    """
    engine = create_async_engine(
        url, poolclass=NullPool, connect_args={"timeout": timeout}
    )
    try:
        async with engine.connect() as conn:
            result = await asyncio.wait_for(conn.execute(PUBLIC_TABLES_QUERY), timeout)
            return [row[0] for row in result]
    finally:
        await engine.dispose()
