"""
SQLite database utilities for the store module.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


SCHEMA_SQL = """
CREATE TABLE voters (
  id INTEGER PRIMARY KEY,
  case_id INTEGER NOT NULL,
  voter TEXT NOT NULL,
  amount_hold TEXT NOT NULL,
  vote_credit TEXT NOT NULL
);

CREATE TABLE votes (
  id INTEGER PRIMARY KEY,
  case_id INTEGER NOT NULL,
  evidence_id INTEGER NOT NULL,
  voter TEXT NOT NULL,
  yes_credit INTEGER NOT NULL,
  no_credit INTEGER NOT NULL,
  distribution_reward INTEGER NOT NULL
);

CREATE TABLE id_counters (
  collection TEXT PRIMARY KEY,
  last_id INTEGER NOT NULL
);

CREATE TABLE code_blobs (
  code_hash TEXT PRIMARY KEY,
  source TEXT NOT NULL,
  created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE store_meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
"""

_IDEMPOTENT_SCHEMA_SQL = SCHEMA_SQL.replace("CREATE TABLE", "CREATE TABLE IF NOT EXISTS")


def initialize_database(db_path: str) -> None:
    """Create the SQLite database and schema if needed."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(str(path))
    try:
        _ = connection.executescript(_IDEMPOTENT_SCHEMA_SQL)
        connection.commit()
    finally:
        connection.close()


def connect(db_path: str) -> sqlite3.Connection:
    """Open a SQLite connection with sane defaults.

    The driver's implicit BEGIN is turned off; callers open transactions
    explicitly through :func:`transaction`.
    """
    connection = sqlite3.connect(db_path, isolation_level=None)
    connection.row_factory = sqlite3.Row
    return connection


@contextmanager
def transaction(db_path: str, immediate: bool = True) -> Iterator[sqlite3.Connection]:
    """Run one call as a single all-or-nothing transaction.

    Commits when the block exits normally and rolls back on any exception,
    so an aborted call leaves no partial mutation visible. ``immediate``
    takes the write lock up front; read-only calls pass ``False``.
    """
    connection = connect(db_path)
    try:
        _ = connection.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield connection
        except BaseException:
            _ = connection.execute("ROLLBACK")
            raise
        _ = connection.execute("COMMIT")
    finally:
        connection.close()
