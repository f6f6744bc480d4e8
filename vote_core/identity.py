"""
Identifier assignment policies.

Each collection owns its own identifier space. Assigners run inside the
insert's transaction, so a failed insert never consumes an identifier.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from typing import cast

from .errors import IdentifierOverflowError
from .schemas import MAX_IDENTIFIER, IdPolicy

COLLECTIONS = ("voters", "votes")


def _check_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection}")
    return collection


def _count_rows(connection: sqlite3.Connection, collection: str) -> int:
    table = _check_collection(collection)
    row = cast(tuple[int], connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone())
    return int(row[0])


class IdentityAssigner(ABC):
    policy: IdPolicy

    @abstractmethod
    def peek_next_id(self, connection: sqlite3.Connection, collection: str) -> int:
        """Return the id the next insert would receive, without consuming it."""

    @abstractmethod
    def next_id(self, connection: sqlite3.Connection, collection: str) -> int:
        """Produce the id for an insert happening in the current transaction."""

    def _checked(self, candidate: int, collection: str) -> int:
        if candidate > MAX_IDENTIFIER:
            raise IdentifierOverflowError(collection)
        return candidate


class SizeIdentityAssigner(IdentityAssigner):
    """Legacy policy: next id is the collection size plus one.

    Deleting a record shrinks the size, so ids can be reissued and may land
    on a live record.
    """

    policy = IdPolicy.SIZE

    def peek_next_id(self, connection: sqlite3.Connection, collection: str) -> int:
        return _count_rows(connection, collection) + 1

    def next_id(self, connection: sqlite3.Connection, collection: str) -> int:
        return self._checked(self.peek_next_id(connection, collection), collection)


class CounterIdentityAssigner(IdentityAssigner):
    """Strictly increasing per-collection counter, never decremented by delete."""

    policy = IdPolicy.COUNTER

    def _last_id(self, connection: sqlite3.Connection, collection: str) -> int:
        row = cast(
            tuple[int] | None,
            connection.execute(
                "SELECT last_id FROM id_counters WHERE collection = ?",
                (_check_collection(collection),),
            ).fetchone(),
        )
        return int(row[0]) if row is not None else 0

    def peek_next_id(self, connection: sqlite3.Connection, collection: str) -> int:
        return self._last_id(connection, collection) + 1

    def next_id(self, connection: sqlite3.Connection, collection: str) -> int:
        candidate = self._checked(self.peek_next_id(connection, collection), collection)
        _ = connection.execute(
            """
            INSERT INTO id_counters (collection, last_id) VALUES (?, ?)
            ON CONFLICT(collection) DO UPDATE SET last_id = excluded.last_id
            """,
            (collection, candidate),
        )
        return candidate


def make_identity_assigner(policy: IdPolicy | str) -> IdentityAssigner:
    resolved = IdPolicy(policy)
    if resolved is IdPolicy.SIZE:
        return SizeIdentityAssigner()
    return CounterIdentityAssigner()
