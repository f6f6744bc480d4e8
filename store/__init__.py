"""
Store Module

Voter and vote persistence layer.

This module provides:
- SQLite-backed storage for voter and vote records
- Per-call transactions with rollback on any abort
- Ascending-id listing and evidence-id filtering
- Logic blob registry and code hash migration
"""

__version__ = "0.1.0"
