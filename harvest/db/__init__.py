"""Record store for sessions, transcripts, projects and staged items."""

from harvest.db.database import Database, get_database, reset_database

__all__ = ["Database", "get_database", "reset_database"]
