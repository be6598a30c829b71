"""Database package."""

from planboard.db.base import Base, JSONType
from planboard.db.session import DBSession, get_db_session

__all__ = ["Base", "DBSession", "JSONType", "get_db_session"]
