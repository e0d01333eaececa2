"""
Database Module - Opportunity Scoring Service

Structure:
    database/
    ├── __init__.py      # This file - public API
    ├── session.py       # Async engine and sessions
    └── models/          # ORM models

Usage:
    from database import get_session, create_tables

    await create_tables()
    async with get_session() as session:
        ...

Queries go through the repositories package.
"""

from .session import (
    init_engine,
    close_engine,
    create_tables,
    get_session,
    get_session_dependency,
    get_database_url,
)

__all__ = [
    "init_engine",
    "close_engine",
    "create_tables",
    "get_session",
    "get_session_dependency",
    "get_database_url",
]
