"""
Vote Core Module

Record schemas, identifier policies and the error taxonomy shared by the
store and the console.

This module provides:
- Voter / Vote record schemas with 32-bit identifier and u8 bounds
- Identity assigners (strict counter and legacy size-based)
- NotFound and fatal error types
"""

__version__ = "0.1.0"

from .errors import (
    ErrorKind,
    FatalStoreError,
    IdentifierOverflowError,
    MigrationError,
    NotFoundError,
    StoreError,
    VoteNotFoundError,
    VoterNotFoundError,
)
from .schemas import Vote, VoteOutput, Voter, VoterOutput

__all__ = [
    "ErrorKind",
    "FatalStoreError",
    "IdentifierOverflowError",
    "MigrationError",
    "NotFoundError",
    "StoreError",
    "Vote",
    "VoteNotFoundError",
    "VoteOutput",
    "Voter",
    "VoterNotFoundError",
    "VoterOutput",
]
