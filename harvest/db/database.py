"""Database management for harvest.

Handles SQLite connections, migrations, and the record operations the
extraction pipeline depends on: point lookups, filtered range queries,
inserts and updates over sessions, clean transcripts, projects, staged
items and run history.
"""

from __future__ import annotations

import contextlib
import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from harvest.config import get_config
from harvest.utils.text import utc_timestamp

# Session columns the pipeline is allowed to write.
_SESSION_UPDATABLE = frozenset({"status", "extracted_at", "extraction_metadata"})

_JSON_COLUMNS = ("extraction_metadata", "file_refs", "metadata", "stats")


def _decode_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    """Convert a row to a dict, decoding JSON text columns."""
    if row is None:
        return None
    data = dict(row)
    for column in _JSON_COLUMNS:
        raw = data.get(column)
        if isinstance(raw, str):
            try:
                data[column] = json.loads(raw)
            except json.JSONDecodeError:
                pass
    return data


class Database:
    """SQLite database wrapper used as the pipeline's record store."""

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database. If None, uses config.
        """
        self.db_path = Path(db_path or get_config().database.path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._connections: set[sqlite3.Connection] = set()
        self._connections_lock = threading.Lock()

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._create_connection()
            self._local.conn = conn
        return conn

    def _create_connection(self) -> sqlite3.Connection:
        """Create and configure a new SQLite connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row

        if get_config().database.wal_mode:
            conn.execute("PRAGMA journal_mode=WAL")

        with self._connections_lock:
            self._connections.add(conn)

        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions.

        Nested calls run inside a savepoint, so an inner failure only undoes
        the inner work and the outermost block decides whether to commit.
        """
        conn = self.conn
        depth = getattr(self._local, "depth", 0)
        savepoint = f"sp_{depth}"

        if depth:
            conn.execute(f"SAVEPOINT {savepoint}")
        elif not conn.in_transaction:
            conn.execute("BEGIN")

        self._local.depth = depth + 1
        try:
            yield conn
        except Exception:
            if depth:
                conn.execute(f"ROLLBACK TO {savepoint}")
                conn.execute(f"RELEASE {savepoint}")
            else:
                conn.rollback()
            raise
        else:
            if depth:
                conn.execute(f"RELEASE {savepoint}")
            else:
                conn.commit()
        finally:
            self._local.depth = depth

    def close(self) -> None:
        """Close all open database connections."""
        with self._connections_lock:
            connections = list(self._connections)
            self._connections.clear()

        for conn in connections:
            with contextlib.suppress(sqlite3.ProgrammingError):
                conn.close()

        if hasattr(self._local, "conn"):
            del self._local.conn

    def migrate(self) -> None:
        """Run pending database migrations."""
        try:
            cursor = self.conn.execute("SELECT MAX(version) FROM schema_migrations")
            current_version = cursor.fetchone()[0] or 0
        except sqlite3.OperationalError:
            # Table doesn't exist yet
            current_version = 0

        migrations_dir = Path(__file__).parent / "migrations"
        for migration_file in sorted(migrations_dir.glob("*.sql")):
            # 001_initial_schema.sql -> 1
            version = int(migration_file.stem.split("_")[0])
            if version > current_version:
                self._run_migration(migration_file, version)

    def _run_migration(self, migration_file: Path, version: int) -> None:
        """Run a single migration file and record it."""
        sql = migration_file.read_text()

        with self.transaction():
            for statement in sql.split(";"):
                statement = statement.strip()
                if statement and "INSERT INTO schema_migrations" not in statement:
                    self.conn.execute(statement)

            cursor = self.conn.execute(
                "SELECT 1 FROM schema_migrations WHERE version = ?", (version,)
            )
            if not cursor.fetchone():
                self.conn.execute(
                    "INSERT INTO schema_migrations (version, name) VALUES (?, ?)",
                    (version, migration_file.stem),
                )

    # Session operations

    def insert_session(
        self,
        session_id: str,
        project_slug: str | None,
        status: str = "cleaned",
        created_at: datetime | None = None,
        summary: str | None = None,
    ) -> None:
        """Insert a session record (normally written by upstream ingestion)."""
        with self.transaction():
            self.conn.execute(
                """
                INSERT INTO sessions (id, project_slug, status, summary, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (session_id, project_slug, status, summary, utc_timestamp(created_at)),
            )

    def get_session(self, session_id: str) -> dict[str, Any] | None:
        """Get a session by ID.

        Returns:
            Session dict or None.
        """
        cursor = self.conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,))
        return _decode_row(cursor.fetchone())

    def query_sessions(
        self,
        *,
        created_after: datetime,
        status: str | None = None,
        exclude_status: str | None = None,
        limit: int = 10,
        newest_first: bool = True,
    ) -> list[dict[str, Any]]:
        """Query sessions created at or after a cutoff.

        Args:
            created_after: Inclusive lower bound on ``created_at``.
            status: Only return sessions with this status (optional).
            exclude_status: Never return sessions with this status (optional).
            limit: Maximum number of rows.
            newest_first: Order by ``created_at`` descending.

        Returns:
            List of session dicts.
        """
        conditions = ["created_at >= ?"]
        params: list[Any] = [utc_timestamp(created_after)]

        if status:
            conditions.append("status = ?")
            params.append(status)
        if exclude_status:
            conditions.append("status != ?")
            params.append(exclude_status)

        order = "DESC" if newest_first else "ASC"
        params.append(int(limit))

        cursor = self.conn.execute(
            f"""
            SELECT * FROM sessions
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at {order}, id {order}
            LIMIT ?
            """,
            params,
        )
        return [row for row in (_decode_row(r) for r in cursor.fetchall()) if row]

    def update_session(self, session_id: str, **fields: Any) -> int:
        """Update writable session columns.

        Dict and list values are stored as JSON.

        Returns:
            Number of rows updated.
        """
        unknown = set(fields) - _SESSION_UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update session columns: {', '.join(sorted(unknown))}")
        if not fields:
            return 0

        assignments = ", ".join(f"{column} = ?" for column in fields)
        values = [
            json.dumps(value) if isinstance(value, (dict, list)) else value
            for value in fields.values()
        ]

        with self.transaction():
            cursor = self.conn.execute(
                f"UPDATE sessions SET {assignments} WHERE id = ?",
                (*values, session_id),
            )
            return cursor.rowcount

    # Clean transcript operations

    def insert_clean_transcript(
        self,
        session_id: str,
        clean_text: str | None,
        file_refs: list[str] | None = None,
        project_id: str | None = None,
    ) -> None:
        """Insert or replace the clean transcript for a session."""
        with self.transaction():
            self.conn.execute(
                """
                INSERT INTO clean_transcripts (session_id, clean_text, file_refs, project_id)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    clean_text = excluded.clean_text,
                    file_refs = excluded.file_refs,
                    project_id = excluded.project_id
                """,
                (
                    session_id,
                    clean_text,
                    json.dumps(file_refs) if file_refs is not None else None,
                    project_id,
                ),
            )

    def get_clean_transcript(self, session_id: str) -> dict[str, Any] | None:
        """Get the clean transcript record for a session."""
        cursor = self.conn.execute(
            """
            SELECT clean_text, file_refs, project_id
            FROM clean_transcripts
            WHERE session_id = ?
            """,
            (session_id,),
        )
        return _decode_row(cursor.fetchone())

    def has_clean_transcript(self, session_id: str) -> bool:
        """Check whether a clean transcript record exists for a session."""
        cursor = self.conn.execute(
            "SELECT 1 FROM clean_transcripts WHERE session_id = ? LIMIT 1",
            (session_id,),
        )
        return cursor.fetchone() is not None

    # Project operations

    def upsert_project(self, project_id: str, slug: str, name: str | None = None) -> None:
        """Insert or update a project."""
        with self.transaction():
            self.conn.execute(
                """
                INSERT INTO projects (id, slug, name) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET slug = excluded.slug, name = excluded.name
                """,
                (project_id, slug, name),
            )

    def list_projects(self) -> list[dict[str, Any]]:
        """Return every project in insertion order."""
        cursor = self.conn.execute("SELECT id, slug, name FROM projects ORDER BY rowid")
        return [dict(row) for row in cursor.fetchall()]

    # Staged item operations

    def insert_staged_item(self, row: dict[str, Any]) -> int:
        """Insert a staged item.

        Raises:
            sqlite3.IntegrityError: If the fingerprint is already staged.

        Returns:
            Staged item ID.
        """
        with self.transaction():
            cursor = self.conn.execute(
                """
                INSERT INTO staged_items (
                    bucket, category, content, title, priority, status,
                    session_id, project_id, fingerprint, metadata, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING id
                """,
                (
                    row["bucket"],
                    row["category"],
                    row["content"],
                    row["title"],
                    row["priority"],
                    row["status"],
                    row["session_id"],
                    row["project_id"],
                    row["fingerprint"],
                    json.dumps(row.get("metadata") or {}),
                    row["created_at"],
                ),
            )
            result = cursor.fetchone()
            if result is None:
                raise RuntimeError("Failed to insert staged item")
            return int(result[0])

    def get_staged_items(self, session_id: str | None = None) -> list[dict[str, Any]]:
        """List staged items, optionally for one session."""
        query = "SELECT * FROM staged_items"
        params: list[Any] = []
        if session_id:
            query += " WHERE session_id = ?"
            params.append(session_id)
        query += " ORDER BY id"
        cursor = self.conn.execute(query, params)
        return [row for row in (_decode_row(r) for r in cursor.fetchall()) if row]

    # Run history

    def record_run(
        self,
        *,
        started_at: datetime,
        finished_at: datetime,
        mode: str,
        dry_run: bool,
        status: str,
        duration_seconds: float,
        stats: dict[str, Any],
        error: str | None = None,
    ) -> int:
        """Persist the outcome of one extraction run."""
        with self.transaction():
            cursor = self.conn.execute(
                """
                INSERT INTO extraction_runs (
                    started_at, finished_at, mode, dry_run, status,
                    duration_seconds, stats, error
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING id
                """,
                (
                    utc_timestamp(started_at),
                    utc_timestamp(finished_at),
                    mode,
                    1 if dry_run else 0,
                    status,
                    float(duration_seconds),
                    json.dumps(stats),
                    error,
                ),
            )
            result = cursor.fetchone()
            if result is None:
                raise RuntimeError("Failed to record run")
            return int(result[0])

    def get_last_run(self) -> dict[str, Any] | None:
        """Return the most recently recorded run."""
        cursor = self.conn.execute("SELECT * FROM extraction_runs ORDER BY id DESC LIMIT 1")
        run = _decode_row(cursor.fetchone())
        if run is not None:
            run["dry_run"] = bool(run["dry_run"])
        return run

    def get_run_totals(self) -> dict[str, Any]:
        """Return cumulative run counters."""
        cursor = self.conn.execute("SELECT COUNT(*), MIN(started_at) FROM extraction_runs")
        total_runs, first_run_at = cursor.fetchone()

        cursor = self.conn.execute(
            "SELECT stats FROM extraction_runs WHERE dry_run = 0 AND stats IS NOT NULL"
        )
        total_items = 0
        for (raw,) in cursor.fetchall():
            with contextlib.suppress(json.JSONDecodeError, TypeError):
                total_items += int(json.loads(raw).get("inserted", 0))

        return {
            "total_runs": int(total_runs or 0),
            "total_items_extracted": total_items,
            "first_run_at": first_run_at,
        }


# Global database instance
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    global _db
    if _db is None:
        _db = Database()
    return _db


def reset_database() -> None:
    """Reset the global database (useful for testing)."""
    global _db
    if _db:
        _db.close()
    _db = None
