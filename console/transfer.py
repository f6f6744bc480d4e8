"""Bulk YAML import and export of store records."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from tqdm import tqdm

from store.repository import RecordStore
from vote_core.schemas import Vote, Voter


def read_records(yaml_path: str | Path) -> tuple[list[Voter], list[Vote]]:
    """Parse and validate a records file without touching any store.

    The file holds two optional top-level lists, ``voters`` and ``votes``.
    Ids in the file are ignored; the store assigns its own.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is not a mapping or a record is invalid
    """
    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Records file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Records file must be a mapping: {yaml_path}")

    try:
        voters = [Voter.from_dict(_without(item, "voter_id")) for item in data.get("voters") or []]
        votes = [Vote.from_dict(_without(item, "vote_id")) for item in data.get("votes") or []]
    except Exception as e:
        raise ValueError(f"Invalid record in {yaml_path}: {e}") from e

    return voters, votes


def _without(item: Any, key: str) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ValueError(f"record must be a mapping, got {type(item).__name__}")
    return {k: v for k, v in item.items() if k != key}


def insert_records(
    store: RecordStore,
    voters: list[Voter],
    votes: list[Vote],
    show_progress: bool = True,
) -> dict[str, list[int]]:
    """Insert records one insert call at a time, returning assigned ids in order."""
    voter_ids = [
        store.insert_voter(voter)
        for voter in tqdm(voters, desc="Voters", unit="rec", ncols=80, disable=not show_progress)
    ]
    vote_ids = [
        store.insert_vote(vote)
        for vote in tqdm(votes, desc="Votes", unit="rec", ncols=80, disable=not show_progress)
    ]
    return {"voters": voter_ids, "votes": vote_ids}


def load_records(
    store: RecordStore,
    yaml_path: str | Path,
    show_progress: bool = True,
) -> dict[str, list[int]]:
    """Insert every record of a YAML file.

    The whole file is validated before the first insert.
    """
    voters, votes = read_records(yaml_path)
    return insert_records(store, voters, votes, show_progress=show_progress)


def dump_records(store: RecordStore, yaml_path: str | Path) -> None:
    """Write every voter and vote, ids included, to a YAML file."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "voters": [record.to_dict() for record in store.list_voters()],
        "votes": [record.to_dict() for record in store.list_votes()],
    }

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
