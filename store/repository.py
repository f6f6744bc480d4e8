"""
SQLite-backed voter/vote repository and query interface.
"""

from __future__ import annotations

import hashlib
import logging
import re
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import cast

from vote_core.errors import (
    MigrationError,
    NotFoundError,
    VoteNotFoundError,
    VoterNotFoundError,
)
from vote_core.identity import IdentityAssigner, make_identity_assigner
from vote_core.schemas import (
    IdPolicy,
    StoreStats,
    Vote,
    VoteOutput,
    Voter,
    VoterOutput,
)

from .database import initialize_database, transaction

logger = logging.getLogger(__name__)

VOTER_COLUMNS = ("case_id", "voter", "amount_hold", "vote_credit")
VOTE_COLUMNS = (
    "case_id",
    "evidence_id",
    "voter",
    "yes_credit",
    "no_credit",
    "distribution_reward",
)

_CODE_HASH_RE = re.compile(r"^(?:0x)?([0-9a-fA-F]{64})$")


def _require_str(value: object, field: str) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        raise ValueError(f"{field} is required")
    return str(value)


def _require_int(value: object, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value)
    if value is None:
        raise ValueError(f"{field} is required")
    raise ValueError(f"{field} must be an int")


def _voter_from_row(row: sqlite3.Row) -> VoterOutput:
    return VoterOutput(
        voter_id=_require_int(row["id"], "id"),
        case_id=_require_int(row["case_id"], "case_id"),
        voter=_require_str(row["voter"], "voter"),
        amount_hold=_require_int(row["amount_hold"], "amount_hold"),
        vote_credit=_require_int(row["vote_credit"], "vote_credit"),
    )


def _vote_from_row(row: sqlite3.Row) -> VoteOutput:
    return VoteOutput(
        vote_id=_require_int(row["id"], "id"),
        case_id=_require_int(row["case_id"], "case_id"),
        evidence_id=_require_int(row["evidence_id"], "evidence_id"),
        voter=_require_str(row["voter"], "voter"),
        yes_credit=_require_int(row["yes_credit"], "yes_credit"),
        no_credit=_require_int(row["no_credit"], "no_credit"),
        distribution_reward=_require_int(row["distribution_reward"], "distribution_reward"),
    )


def _voter_values(voter: Voter) -> tuple[object, ...]:
    # Balances exceed SQLite's 64-bit INTEGER, keep them as decimal text.
    return (voter.case_id, voter.voter, str(voter.amount_hold), str(voter.vote_credit))


def _vote_values(vote: Vote) -> tuple[object, ...]:
    return (
        vote.case_id,
        vote.evidence_id,
        vote.voter,
        vote.yes_credit,
        vote.no_credit,
        vote.distribution_reward,
    )


def normalize_source(source: str) -> str:
    """Normalize a logic blob by stripping trailing whitespace and blank lines."""
    lines = [line.rstrip() for line in source.strip().splitlines()]
    return "\n".join(line for line in lines if line)


def code_hash(source: str) -> str:
    """Return SHA256 hash for normalized logic source."""
    normalized = normalize_source(source)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class RecordStore:
    """Voters and votes kept in two independent id-keyed tables.

    Every public method is one transaction: it either commits fully or
    leaves the database untouched.
    """

    def __init__(
        self,
        db_path: str | Path,
        id_policy: IdPolicy | str = IdPolicy.COUNTER,
    ) -> None:
        self.db_path: str = str(db_path)
        self.assigner: IdentityAssigner = make_identity_assigner(id_policy)
        initialize_database(self.db_path)
        self._ensure_policy()
        logger.info(f"Record store ready at {self.db_path} (id_policy={self.id_policy.value})")

    @property
    def id_policy(self) -> IdPolicy:
        return self.assigner.policy

    def _ensure_policy(self) -> None:
        with transaction(self.db_path) as connection:
            row = cast(
                sqlite3.Row | None,
                connection.execute(
                    "SELECT value FROM store_meta WHERE key = 'id_policy'"
                ).fetchone(),
            )
            if row is None:
                _ = connection.execute(
                    "INSERT INTO store_meta (key, value) VALUES ('id_policy', ?)",
                    (self.id_policy.value,),
                )
                return
            stored = _require_str(row["value"], "id_policy")
            if stored != self.id_policy.value:
                raise ValueError(
                    f"Store at {self.db_path} uses id_policy={stored}, "
                    f"not {self.id_policy.value}"
                )

    def _insert(self, table: str, columns: tuple[str, ...], values: tuple[object, ...]) -> int:
        with transaction(self.db_path) as connection:
            record_id = self.assigner.next_id(connection, table)
            existing = connection.execute(
                f"SELECT 1 FROM {table} WHERE id = ?", (record_id,)
            ).fetchone()
            if existing is not None:
                # Size-derived ids can land on a live key; the new record replaces it.
                logger.warning(f"Insert into {table} reissued live id {record_id}, replacing it")
            placeholders = ", ".join("?" for _ in range(len(columns) + 1))
            _ = connection.execute(
                f"INSERT OR REPLACE INTO {table} (id, {', '.join(columns)}) "
                f"VALUES ({placeholders})",
                (record_id, *values),
            )
        logger.info(f"Inserted {table} record {record_id}")
        return record_id

    def _update(
        self,
        table: str,
        record_id: int,
        columns: tuple[str, ...],
        values: tuple[object, ...],
        missing: Callable[[int], NotFoundError],
    ) -> None:
        assignments = ", ".join(f"{column} = ?" for column in columns)
        with transaction(self.db_path) as connection:
            cursor = connection.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                (*values, record_id),
            )
            if cursor.rowcount == 0:
                raise missing(record_id)
        logger.info(f"Updated {table} record {record_id}")

    def _delete(self, table: str, record_id: int, missing: Callable[[int], NotFoundError]) -> None:
        with transaction(self.db_path) as connection:
            cursor = connection.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            if cursor.rowcount == 0:
                raise missing(record_id)
        logger.info(f"Deleted {table} record {record_id}")

    def _fetch_one(self, table: str, record_id: int) -> sqlite3.Row | None:
        with transaction(self.db_path, immediate=False) as connection:
            return cast(
                sqlite3.Row | None,
                connection.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone(),
            )

    def insert_voter(self, voter: Voter) -> int:
        return self._insert("voters", VOTER_COLUMNS, _voter_values(voter))

    def insert_vote(self, vote: Vote) -> int:
        return self._insert("votes", VOTE_COLUMNS, _vote_values(vote))

    def delete_voter(self, voter_id: int) -> None:
        self._delete("voters", voter_id, VoterNotFoundError)

    def delete_vote(self, vote_id: int) -> None:
        self._delete("votes", vote_id, VoteNotFoundError)

    def update_voter(self, voter_id: int, new_voter: Voter) -> None:
        self._update(
            "voters", voter_id, VOTER_COLUMNS, _voter_values(new_voter), VoterNotFoundError
        )

    def update_vote(self, vote_id: int, new_vote: Vote) -> None:
        self._update(
            "votes", vote_id, VOTE_COLUMNS, _vote_values(new_vote), VoteNotFoundError
        )

    def get_voter(self, voter_id: int) -> VoterOutput | None:
        row = self._fetch_one("voters", voter_id)
        return _voter_from_row(row) if row is not None else None

    def get_vote(self, vote_id: int) -> VoteOutput | None:
        row = self._fetch_one("votes", vote_id)
        return _vote_from_row(row) if row is not None else None

    def list_voters(self) -> list[VoterOutput]:
        with transaction(self.db_path, immediate=False) as connection:
            rows = connection.execute("SELECT * FROM voters ORDER BY id").fetchall()
        return [_voter_from_row(cast(sqlite3.Row, row)) for row in rows]

    def list_votes(self) -> list[VoteOutput]:
        with transaction(self.db_path, immediate=False) as connection:
            rows = connection.execute("SELECT * FROM votes ORDER BY id").fetchall()
        return [_vote_from_row(cast(sqlite3.Row, row)) for row in rows]

    def list_votes_for_evidence(self, evidence_id: int) -> list[VoteOutput]:
        with transaction(self.db_path, immediate=False) as connection:
            rows = connection.execute(
                "SELECT * FROM votes WHERE evidence_id = ? ORDER BY id",
                (evidence_id,),
            ).fetchall()
        return [_vote_from_row(cast(sqlite3.Row, row)) for row in rows]

    def upload_code(self, source: str) -> str:
        """Register a logic blob and return its code hash."""
        digest = code_hash(source)
        with transaction(self.db_path) as connection:
            _ = connection.execute(
                "INSERT OR IGNORE INTO code_blobs (code_hash, source) VALUES (?, ?)",
                (digest, normalize_source(source)),
            )
        logger.info(f"Uploaded code {digest}")
        return digest

    def set_code(self, new_code_hash: str) -> None:
        """Switch the active logic reference to a registered code hash.

        Raises:
            MigrationError: the hash is malformed or was never uploaded. The
                previous reference stays active.
        """
        match = _CODE_HASH_RE.match(new_code_hash)
        if match is None:
            logger.error(f"Rejected code hash {new_code_hash!r}: malformed")
            raise MigrationError(new_code_hash, "malformed code hash")
        digest = match.group(1).lower()
        with transaction(self.db_path) as connection:
            known = connection.execute(
                "SELECT 1 FROM code_blobs WHERE code_hash = ?", (digest,)
            ).fetchone()
            if known is None:
                logger.error(f"Rejected code hash {digest}: not uploaded")
                raise MigrationError(new_code_hash, "code hash not uploaded")
            _ = connection.execute(
                """
                INSERT INTO store_meta (key, value) VALUES ('code_hash', ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (digest,),
            )
        logger.info(f"Switched code hash to {digest}.")

    def _read_code_hash(self, connection: sqlite3.Connection) -> str | None:
        row = cast(
            sqlite3.Row | None,
            connection.execute("SELECT value FROM store_meta WHERE key = 'code_hash'").fetchone(),
        )
        if row is None:
            return None
        return _require_str(row["value"], "code_hash")

    def get_code_hash(self) -> str | None:
        with transaction(self.db_path, immediate=False) as connection:
            return self._read_code_hash(connection)

    def get_stats(self) -> StoreStats:
        with transaction(self.db_path, immediate=False) as connection:
            voter_row = cast(sqlite3.Row, connection.execute("SELECT COUNT(*) FROM voters").fetchone())
            vote_row = cast(sqlite3.Row, connection.execute("SELECT COUNT(*) FROM votes").fetchone())
            next_voter_id = self.assigner.peek_next_id(connection, "voters")
            next_vote_id = self.assigner.peek_next_id(connection, "votes")
            active_code_hash = self._read_code_hash(connection)
        return StoreStats(
            voter_count=_require_int(voter_row[0], "voter_count"),
            vote_count=_require_int(vote_row[0], "vote_count"),
            next_voter_id=next_voter_id,
            next_vote_id=next_vote_id,
            id_policy=self.id_policy,
            code_hash=active_code_hash,
        )
