"""
Console Module

Store configuration and CLI.

This module provides:
- YAML-based configuration loading
- CLI for inserting, updating, deleting and listing records
- Code upload and migration commands
"""

__version__ = "0.1.0"
