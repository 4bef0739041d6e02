"""Database layer for contave."""

from contave.database.base import Database
from contave.database.factories import create_database, create_sqlite_database

__all__ = ["Database", "create_database", "create_sqlite_database"]
