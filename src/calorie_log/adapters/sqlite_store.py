"""SQLite-backed store for the food library and the daily log."""

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field

from calorie_log.domain.foods import Food
from calorie_log.domain.logs import BreakdownItem, LogEntry
from calorie_log.errors import StorageError
from calorie_log.services.backup import BackupRepository
from calorie_log.services.library import FoodRepository
from calorie_log.services.logs import LogRepository

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS foods (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  name        TEXT NOT NULL,
  name_lower  TEXT NOT NULL,
  calories    INTEGER NOT NULL CHECK (calories >= 0),
  portion     TEXT NOT NULL,
  tags        TEXT NOT NULL,        -- JSON array of strings
  tags_lower  TEXT NOT NULL,
  notes       TEXT NOT NULL,
  created_at  INTEGER NOT NULL,
  updated_at  INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS logs (
  id               INTEGER PRIMARY KEY AUTOINCREMENT,
  date             TEXT NOT NULL,   -- YYYY-MM-DD
  label            TEXT NOT NULL,
  calories         INTEGER NOT NULL CHECK (calories >= 0),
  range_low        INTEGER,
  range_high       INTEGER,
  note             TEXT NOT NULL,
  breakdown        TEXT NOT NULL,   -- JSON array of {item, calories}
  confidence       TEXT NOT NULL CHECK (confidence IN ('low','medium','high')),
  matched_food_id  INTEGER,         -- not a foreign key
  created_at       INTEGER NOT NULL,
  updated_at       INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_foods_name_lower ON foods(name_lower);
CREATE INDEX IF NOT EXISTS idx_foods_tags_lower ON foods(tags_lower);
CREATE INDEX IF NOT EXISTS idx_foods_updated_at ON foods(updated_at);
CREATE INDEX IF NOT EXISTS idx_logs_date        ON logs(date);
CREATE INDEX IF NOT EXISTS idx_logs_created_at  ON logs(created_at);
"""

_FOOD_COLUMNS = (
    "name",
    "name_lower",
    "calories",
    "portion",
    "tags",
    "tags_lower",
    "notes",
    "created_at",
    "updated_at",
)
_LOG_COLUMNS = (
    "date",
    "label",
    "calories",
    "range_low",
    "range_high",
    "note",
    "breakdown",
    "confidence",
    "matched_food_id",
    "created_at",
    "updated_at",
)


@dataclass
class SqliteStore(FoodRepository, LogRepository, BackupRepository):
    """Transactional store over a single SQLite connection.

    Every public method is one transaction; ``wipe_all`` and ``put_records``
    span both tables. Ids come from ``AUTOINCREMENT`` and are never reused.
    """

    connection: sqlite3.Connection
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False
    )

    @classmethod
    def open(cls, path: str) -> "SqliteStore":
        """Open (and create if needed) the database at ``path``."""
        try:
            connection = sqlite3.connect(
                path, isolation_level=None, check_same_thread=False
            )
            connection.row_factory = sqlite3.Row
            version = connection.execute("PRAGMA user_version").fetchone()[0]
            if version > SCHEMA_VERSION:
                connection.close()
                raise StorageError(
                    f"Database schema version {version} is newer than "
                    f"supported version {SCHEMA_VERSION}."
                )
            connection.executescript(SCHEMA_SQL)
            connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to open database: {exc}") from exc
        logger.info("Opened store at %s", path)
        return cls(connection=connection)

    def close(self) -> None:
        with self._lock:
            self.connection.close()

    @contextmanager
    def transaction(self, *, write: bool = True) -> Iterator[sqlite3.Connection]:
        """Run a block as one transaction, rolling back on any failure."""
        with self._lock:
            try:
                self.connection.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            except sqlite3.Error as exc:
                raise StorageError(f"Failed to begin transaction: {exc}") from exc
            try:
                yield self.connection
            except (sqlite3.Error, OverflowError) as exc:
                self._rollback()
                raise StorageError(f"Transaction aborted: {exc}") from exc
            except BaseException:
                self._rollback()
                raise
            try:
                self.connection.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback()
                raise StorageError(f"Failed to commit transaction: {exc}") from exc

    def put_food(self, food: Food) -> Food:
        """Insert a food, or fully replace the one with the same id."""
        with self.transaction() as conn:
            return _write_food(conn, food)

    def get_food(self, food_id: int) -> Food | None:
        with self.transaction(write=False) as conn:
            row = conn.execute("SELECT * FROM foods WHERE id = ?", (food_id,)).fetchone()
        return _parse_food(row) if row else None

    def delete_food(self, food_id: int) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM foods WHERE id = ?", (food_id,))

    def list_foods(self) -> list[Food]:
        """Return every food, most recently updated first."""
        with self.transaction(write=False) as conn:
            rows = conn.execute(
                "SELECT * FROM foods ORDER BY updated_at DESC, created_at DESC, id DESC"
            ).fetchall()
        return [_parse_food(row) for row in rows]

    def put_log(self, entry: LogEntry) -> LogEntry:
        """Insert an entry, or fully replace the one with the same id."""
        with self.transaction() as conn:
            return _write_log(conn, entry)

    def get_log(self, log_id: int) -> LogEntry | None:
        with self.transaction(write=False) as conn:
            row = conn.execute("SELECT * FROM logs WHERE id = ?", (log_id,)).fetchone()
        return _parse_log(row) if row else None

    def delete_log(self, log_id: int) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM logs WHERE id = ?", (log_id,))

    def list_logs_by_date(self, date: str) -> list[LogEntry]:
        """Exact-match lookup on the date index, newest first."""
        with self.transaction(write=False) as conn:
            rows = conn.execute(
                "SELECT * FROM logs WHERE date = ? ORDER BY created_at DESC, id DESC",
                (date,),
            ).fetchall()
        return [_parse_log(row) for row in rows]

    def list_logs(self) -> list[LogEntry]:
        with self.transaction(write=False) as conn:
            rows = conn.execute("SELECT * FROM logs ORDER BY id").fetchall()
        return [_parse_log(row) for row in rows]

    def wipe_all(self) -> None:
        """Clear both tables; the id sequences keep counting."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM foods")
            conn.execute("DELETE FROM logs")

    def put_records(self, foods: Sequence[Food], logs: Sequence[LogEntry]) -> None:
        """Write foods and logs with put semantics in one transaction."""
        with self.transaction() as conn:
            for food in foods:
                _write_food(conn, food)
            for entry in logs:
                _write_log(conn, entry)

    def _rollback(self) -> None:
        if not self.connection.in_transaction:
            return
        try:
            self.connection.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("Rollback failed")


def _write_food(conn: sqlite3.Connection, food: Food) -> Food:
    values = {
        "name": food.name,
        "name_lower": food.name_lower,
        "calories": food.calories,
        "portion": food.portion,
        "tags": json.dumps(list(food.tags), ensure_ascii=False),
        "tags_lower": food.tags_lower,
        "notes": food.notes,
        "created_at": food.created_at,
        "updated_at": food.updated_at,
    }
    food_id = _upsert(conn, "foods", _FOOD_COLUMNS, food.id, values)
    return food.with_id(food_id)


def _write_log(conn: sqlite3.Connection, entry: LogEntry) -> LogEntry:
    values = {
        "date": entry.date,
        "label": entry.label,
        "calories": entry.calories,
        "range_low": entry.range_low,
        "range_high": entry.range_high,
        "note": entry.note,
        "breakdown": json.dumps(
            [item.to_record() for item in entry.breakdown], ensure_ascii=False
        ),
        "confidence": entry.confidence,
        "matched_food_id": entry.matched_food_id,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
    }
    log_id = _upsert(conn, "logs", _LOG_COLUMNS, entry.id, values)
    return entry.with_id(log_id)


def _upsert(
    conn: sqlite3.Connection,
    table: str,
    columns: tuple[str, ...],
    record_id: int | None,
    values: dict[str, object],
) -> int:
    placeholders = ", ".join(f":{column}" for column in columns)
    if record_id is None:
        cursor = conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",  # noqa: S608
            values,
        )
        return int(cursor.lastrowid)
    conn.execute(
        f"INSERT OR REPLACE INTO {table} (id, {', '.join(columns)}) "  # noqa: S608
        f"VALUES (:id, {placeholders})",
        {"id": record_id, **values},
    )
    return record_id


def _parse_food(row: sqlite3.Row) -> Food:
    """Parse a foods row into a domain model."""
    return Food(
        id=int(row["id"]),
        name=str(row["name"]),
        calories=int(row["calories"]),
        portion=str(row["portion"]),
        tags=tuple(str(tag) for tag in json.loads(row["tags"] or "[]")),
        notes=str(row["notes"]),
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )


def _parse_log(row: sqlite3.Row) -> LogEntry:
    """Parse a logs row into a domain model."""
    breakdown = json.loads(row["breakdown"] or "[]")
    return LogEntry(
        id=int(row["id"]),
        date=str(row["date"]),
        label=str(row["label"]),
        calories=int(row["calories"]),
        range_low=row["range_low"],
        range_high=row["range_high"],
        note=str(row["note"]),
        breakdown=tuple(
            BreakdownItem(item=str(item["item"]), calories=int(item["calories"]))
            for item in breakdown
        ),
        confidence=row["confidence"],
        matched_food_id=row["matched_food_id"],
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )
