from __future__ import annotations

from typing import Literal

from pydantic import Field

from orderdesk.settings.base import OrderDeskBaseSettings


class DatabaseSettings(OrderDeskBaseSettings):
    """
    Document store backend selection.

    `memory` keeps everything in-process; `sql` persists through
    SQLAlchemy (sqlite+aiosqlite or postgresql+asyncpg).
    """

    backend: Literal["memory", "sql"] = Field("memory", alias="ORDERDESK_STORE_BACKEND")
    database_url: str = Field("sqlite+aiosqlite:///./orderdesk.db", alias="DATABASE_URL")
    echo_sql: bool = Field(False, alias="DB_ECHO_SQL")

    # Connection pool settings (ignored for sqlite)
    pool_size: int = Field(10, alias="DB_POOL_SIZE")
    max_overflow: int = Field(20, alias="DB_MAX_OVERFLOW")
    pool_recycle: int = Field(3600, alias="DB_POOL_RECYCLE")
