"""Mirror store: SQLite tables for mirrored entities, checkpoints and runs.

Tables for mirrored entities are generated from the models in
`mirror.models`. Every row also gets a `synced_at` timestamp (microsecond
precision) written at upsert time.

Upserts use INSERT OR REPLACE: a row matching the primary key *or* the
natural-key unique index is replaced, so re-running a sync never creates
duplicates and the latest fetched values win. When a document comes back
under a new id with the same number, its stored lines move to the new id in
the same transaction.

A document's lines are replaced as one transaction: either the whole new
line set is stored or the old one is left untouched.

Run bookkeeping (sync_runs) doubles as an advisory lock: at most one row
may be 'running' unless it is older than the stale timeout.
"""

import json
import logging
import sqlite3
import typing
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type

from mirror.errors import PersistenceError, SyncAlreadyRunningError
from mirror.models import ALL_MODELS, DOCUMENT_LINES, MirrorRecord

logger = logging.getLogger(__name__)

RUN_RUNNING = "running"
RUN_SUCCEEDED = "succeeded"
RUN_FAILED = "failed"
RUN_ABANDONED = "abandoned"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _sql_type(annotation: Any) -> str:
    """SQLite column affinity for a model field annotation."""
    args = [a for a in typing.get_args(annotation) if a is not type(None)]
    base = args[0] if args else annotation
    if base is bool or base is int:
        return "INTEGER"
    return "TEXT"


def _columns(model: Type[MirrorRecord]) -> List[str]:
    return [name for name, info in model.model_fields.items() if not info.exclude]


def _create_table_sql(model: Type[MirrorRecord]) -> str:
    required = set(model.primary_key) | set(model.natural_key)
    if model.parent_field:
        required.add(model.parent_field)

    column_defs = []
    for name in _columns(model):
        info = model.model_fields[name]
        not_null = " NOT NULL" if name in required else ""
        column_defs.append(f"{name} {_sql_type(info.annotation)}{not_null}")
    column_defs.append("synced_at TEXT NOT NULL")
    column_defs.append(f"PRIMARY KEY ({', '.join(model.primary_key)})")

    body = ",\n                ".join(column_defs)
    return f"""
            CREATE TABLE IF NOT EXISTS {model.table} (
                {body}
            )
        """


class MirrorStore:
    """SQLite-backed upsert target for mirrored records.

    Usage:
        store = MirrorStore(db_path)
        store.init_schema()
        store.upsert(customer)
        store.set_checkpoint("customers", started_at)
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    # =========================================================================
    # Connection / Schema
    # =========================================================================

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            # Autocommit; multi-statement operations open their own transaction
            self._conn = sqlite3.connect(str(self.db_path), isolation_level=None, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """BEGIN IMMEDIATE ... COMMIT, rolled back if the body raises."""
        cursor = self.conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor
            cursor.execute("COMMIT")
        except Exception:
            cursor.execute("ROLLBACK")
            raise

    def init_schema(self) -> None:
        """Create entity, checkpoint and run tables if they don't exist."""
        cursor = self.conn.cursor()

        for model in ALL_MODELS:
            cursor.execute(_create_table_sql(model))
            if model.natural_key:
                cursor.execute(f"""
                    CREATE UNIQUE INDEX IF NOT EXISTS ux_{model.table}_natural
                    ON {model.table}({', '.join(model.natural_key)})
                """)
            if model.parent_field:
                cursor.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{model.table}_parent
                    ON {model.table}({model.parent_field}, api_source)
                """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sync_status (
                entity_name TEXT PRIMARY KEY,
                last_sync_date_time TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sync_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                trigger_type TEXT NOT NULL,
                full_resync INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL,
                started_at TEXT NOT NULL,
                finished_at TEXT,
                error TEXT,
                stats TEXT
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_sync_runs_status
            ON sync_runs(status, started_at)
        """)
        logger.info(f"Mirror schema initialized at {self.db_path}")

    # =========================================================================
    # Entity Upserts
    # =========================================================================

    def upsert(self, record: MirrorRecord) -> None:
        """Create or replace one record by primary key / natural key.

        Raises:
            PersistenceError: The write failed
        """
        model = type(record)
        line_model = DOCUMENT_LINES.get(model)

        try:
            if line_model is None:
                self._write(self.conn, record)
            else:
                with self._transaction() as cursor:
                    self._repoint_lines(cursor, record, line_model)
                    self._write(cursor, record)
        except sqlite3.Error as e:
            raise PersistenceError(model.table, record.key(), e) from e

    def _write(self, cursor, record: MirrorRecord) -> None:
        model = type(record)
        row = record.to_row()
        row["synced_at"] = _timestamp(_utcnow())
        columns = list(row.keys())
        placeholders = ", ".join("?" for _ in columns)
        cursor.execute(
            f"INSERT OR REPLACE INTO {model.table} ({', '.join(columns)}) VALUES ({placeholders})",
            [row[c] for c in columns],
        )

    def _repoint_lines(self, cursor: sqlite3.Cursor, document: MirrorRecord, line_model: Type[MirrorRecord]) -> None:
        """Move lines of a stored document that shares this one's natural key but not its id."""
        model = type(document)
        row = document.to_row()
        where = " AND ".join(f"{column} = ?" for column in model.natural_key)
        existing = cursor.execute(
            f"SELECT id FROM {model.table} WHERE {where}",
            [row[column] for column in model.natural_key],
        ).fetchone()
        if existing is None or existing["id"] == document.id:
            return

        moved = cursor.execute(
            f"UPDATE {line_model.table} SET {line_model.parent_field} = ? "
            f"WHERE {line_model.parent_field} = ? AND api_source = ?",
            (document.id, existing["id"], document.api_source),
        ).rowcount
        logger.info(
            f"{model.table} {row[model.natural_key[0]]} changed id {existing['id']} -> {document.id}; "
            f"moved {moved} lines"
        )

    def _delete_lines(self, cursor, line_model: Type[MirrorRecord], parent_key: str, api_source: str) -> int:
        return cursor.execute(
            f"DELETE FROM {line_model.table} WHERE {line_model.parent_field} = ? AND api_source = ?",
            (parent_key, api_source),
        ).rowcount

    def delete_lines(self, line_model: Type[MirrorRecord], parent_key: str, api_source: str) -> int:
        """Remove a document's stored lines."""
        try:
            return self._delete_lines(self.conn, line_model, parent_key, api_source)
        except sqlite3.Error as e:
            raise PersistenceError(line_model.table, (parent_key, api_source), e) from e

    def replace_lines(
        self,
        line_model: Type[MirrorRecord],
        parent_key: str,
        api_source: str,
        lines: Sequence[MirrorRecord],
    ) -> int:
        """Swap a document's stored lines for `lines` in one transaction.

        Returns:
            Number of lines removed

        Raises:
            PersistenceError: The swap failed; the previous lines are kept
        """
        try:
            with self._transaction() as cursor:
                removed = self._delete_lines(cursor, line_model, parent_key, api_source)
                for line in lines:
                    self._write(cursor, line)
        except sqlite3.Error as e:
            raise PersistenceError(line_model.table, (parent_key, api_source), e) from e
        return removed

    # =========================================================================
    # Checkpoints
    # =========================================================================

    def get_checkpoint(self, entity_name: str) -> Optional[datetime]:
        """Last successful sync time for an entity stage, or None."""
        row = self.conn.execute(
            "SELECT last_sync_date_time FROM sync_status WHERE entity_name = ?",
            (entity_name,),
        ).fetchone()
        if row is None:
            return None
        return datetime.fromisoformat(row["last_sync_date_time"])

    def set_checkpoint(self, entity_name: str, timestamp: datetime) -> None:
        try:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO sync_status (entity_name, last_sync_date_time, updated_at)
                VALUES (?, ?, ?)
                """,
                (entity_name, _timestamp(timestamp), _timestamp(_utcnow())),
            )
        except sqlite3.Error as e:
            raise PersistenceError("sync_status", entity_name, e) from e

    def list_checkpoints(self) -> Dict[str, str]:
        rows = self.conn.execute(
            "SELECT entity_name, last_sync_date_time FROM sync_status ORDER BY entity_name"
        ).fetchall()
        return {row["entity_name"]: row["last_sync_date_time"] for row in rows}

    # =========================================================================
    # Runs / Advisory Lock
    # =========================================================================

    def start_run(self, trigger: str, full_resync: bool, stale_after: timedelta) -> int:
        """Record a new running sync, refusing if another one is live.

        Running rows older than `stale_after` are assumed dead (crashed
        worker) and marked abandoned.

        Raises:
            SyncAlreadyRunningError: A live run holds the lock
            PersistenceError: The run table could not be read or written
        """
        now = _utcnow()
        try:
            with self._transaction() as cursor:
                running = cursor.execute(
                    "SELECT id, started_at FROM sync_runs WHERE status = ? ORDER BY id",
                    (RUN_RUNNING,),
                ).fetchall()
                for row in running:
                    started_at = datetime.fromisoformat(row["started_at"])
                    if now - started_at < stale_after:
                        raise SyncAlreadyRunningError(row["id"], row["started_at"])
                    logger.warning(f"Marking stale sync run {row['id']} (started {row['started_at']}) as abandoned")
                    cursor.execute(
                        "UPDATE sync_runs SET status = ?, finished_at = ?, error = ? WHERE id = ?",
                        (RUN_ABANDONED, _timestamp(now), "stale run lock released", row["id"]),
                    )

                cursor.execute(
                    """
                    INSERT INTO sync_runs (trigger_type, full_resync, status, started_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (trigger, int(full_resync), RUN_RUNNING, _timestamp(now)),
                )
                run_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise PersistenceError("sync_runs", trigger, e) from e
        return run_id

    def finish_run(
        self,
        run_id: int,
        status: str,
        error: Optional[str] = None,
        stats: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Raises PersistenceError when the run row cannot be updated."""
        try:
            self.conn.execute(
                "UPDATE sync_runs SET status = ?, finished_at = ?, error = ?, stats = ? WHERE id = ?",
                (status, _timestamp(_utcnow()), error, json.dumps(stats, default=str) if stats else None, run_id),
            )
        except sqlite3.Error as e:
            raise PersistenceError("sync_runs", run_id, e) from e

    def recent_runs(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = self.conn.execute(
            "SELECT * FROM sync_runs ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        runs = []
        for row in rows:
            run = dict(row)
            run["full_resync"] = bool(run["full_resync"])
            run["stats"] = json.loads(run["stats"]) if run["stats"] else None
            runs.append(run)
        return runs

    # =========================================================================
    # Queries
    # =========================================================================

    def fetch_rows(self, model: Type[MirrorRecord], **where: Any) -> List[Dict[str, Any]]:
        """Rows of a mirrored table, optionally filtered by column equality."""
        sql = f"SELECT * FROM {model.table}"
        params: List[Any] = []
        if where:
            clauses = []
            for column, value in where.items():
                if isinstance(value, (date, datetime)):
                    value = value.isoformat()
                clauses.append(f"{column} = ?")
                params.append(value)
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY rowid"
        return [dict(row) for row in self.conn.execute(sql, params).fetchall()]

    def count(self, model: Type[MirrorRecord], **where: Any) -> int:
        return len(self.fetch_rows(model, **where))
