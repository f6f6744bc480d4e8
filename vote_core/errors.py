"""Error taxonomy for the record store.

NotFound errors are recoverable and raised by update/delete on an absent id.
Fatal errors abort the whole call; the surrounding transaction is rolled back.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VOTER_NOT_FOUND = "voter_not_found"
    VOTE_NOT_FOUND = "vote_not_found"


class StoreError(Exception):
    """Base class for record store errors."""


class NotFoundError(StoreError, LookupError):
    kind: ErrorKind
    record_id: int

    def __init__(self, kind: ErrorKind, record_id: int) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.value}: {record_id}")


class VoterNotFoundError(NotFoundError):
    def __init__(self, record_id: int) -> None:
        super().__init__(ErrorKind.VOTER_NOT_FOUND, record_id)


class VoteNotFoundError(NotFoundError):
    def __init__(self, record_id: int) -> None:
        super().__init__(ErrorKind.VOTE_NOT_FOUND, record_id)


class FatalStoreError(StoreError, RuntimeError):
    """Unrecoverable condition; the call leaves no partial mutation."""


class IdentifierOverflowError(FatalStoreError):
    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f"identifier space exhausted for {collection}")


class MigrationError(FatalStoreError):
    def __init__(self, code_hash: str, reason: str) -> None:
        self.code_hash = code_hash
        self.reason = reason
        super().__init__(f"Failed to set code hash to {code_hash!r}: {reason}")
