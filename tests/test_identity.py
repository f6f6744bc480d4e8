from pathlib import Path

import pytest

from store.database import initialize_database, transaction
from vote_core.errors import IdentifierOverflowError
from vote_core.identity import (
    CounterIdentityAssigner,
    SizeIdentityAssigner,
    make_identity_assigner,
)
from vote_core.schemas import MAX_IDENTIFIER, IdPolicy


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "ids.db")
    initialize_database(path)
    return path


def _add_voter_row(connection, record_id: int) -> None:
    _ = connection.execute(
        "INSERT INTO voters (id, case_id, voter, amount_hold, vote_credit) VALUES (?, 1, 'x', '0', '0')",
        (record_id,),
    )


def test_make_identity_assigner_maps_policies() -> None:
    assert isinstance(make_identity_assigner("size"), SizeIdentityAssigner)
    assert isinstance(make_identity_assigner(IdPolicy.COUNTER), CounterIdentityAssigner)
    with pytest.raises(ValueError):
        _ = make_identity_assigner("random")


def test_counter_never_goes_back_after_delete(db_path: str) -> None:
    assigner = CounterIdentityAssigner()
    with transaction(db_path) as connection:
        first = assigner.next_id(connection, "voters")
        _add_voter_row(connection, first)
        second = assigner.next_id(connection, "voters")
        _add_voter_row(connection, second)
        _ = connection.execute("DELETE FROM voters")
        third = assigner.next_id(connection, "voters")

    assert (first, second, third) == (1, 2, 3)


def test_counter_spaces_are_independent(db_path: str) -> None:
    assigner = CounterIdentityAssigner()
    with transaction(db_path) as connection:
        assert assigner.next_id(connection, "voters") == 1
        assert assigner.next_id(connection, "voters") == 2
        assert assigner.next_id(connection, "votes") == 1


def test_counter_rollback_does_not_consume_id(db_path: str) -> None:
    assigner = CounterIdentityAssigner()
    with pytest.raises(RuntimeError):
        with transaction(db_path) as connection:
            assert assigner.next_id(connection, "votes") == 1
            raise RuntimeError("abort")

    with transaction(db_path, immediate=False) as connection:
        assert assigner.peek_next_id(connection, "votes") == 1


def test_size_policy_follows_row_count(db_path: str) -> None:
    assigner = SizeIdentityAssigner()
    with transaction(db_path) as connection:
        assert assigner.next_id(connection, "voters") == 1
        _add_voter_row(connection, 1)
        _add_voter_row(connection, 2)
        assert assigner.next_id(connection, "voters") == 3
        _ = connection.execute("DELETE FROM voters WHERE id = 1")
        assert assigner.next_id(connection, "voters") == 2


def test_counter_overflow_raises(db_path: str) -> None:
    assigner = CounterIdentityAssigner()
    with transaction(db_path) as connection:
        _ = connection.execute(
            "INSERT INTO id_counters (collection, last_id) VALUES ('votes', ?)",
            (MAX_IDENTIFIER,),
        )
        with pytest.raises(IdentifierOverflowError):
            _ = assigner.next_id(connection, "votes")


def test_unknown_collection_rejected(db_path: str) -> None:
    with transaction(db_path) as connection:
        with pytest.raises(ValueError):
            _ = SizeIdentityAssigner().next_id(connection, "cases")
