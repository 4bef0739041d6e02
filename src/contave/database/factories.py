"""Database factory functions for creating database instances."""

import os
from typing import Optional

from contave.config import Settings, load_settings
from contave.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks CONTAVE_DB_PATH
            environment variable, then defaults to ~/.contave/contave.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("CONTAVE_DB_PATH")

    return SQLAlchemyDatabase(Settings(database_path=database_path).resolve_database_url())


def create_database(
    database_url: Optional[str] = None, settings: Optional[Settings] = None
) -> SQLAlchemyDatabase:
    """Create a database instance for any SQLAlchemy URL.

    Args:
        database_url: Explicit SQLAlchemy URL. If None, the URL is resolved
            from settings (CONTAVE_DATABASE_URL, then CONTAVE_DB_PATH)
        settings: Settings to resolve from (defaults to the environment)

    Returns:
        SQLAlchemyDatabase instance
    """
    if database_url is None:
        database_url = (settings or load_settings()).resolve_database_url()
    return SQLAlchemyDatabase(database_url)
