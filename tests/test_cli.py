import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from console.cli import app
from store.repository import RecordStore

runner = CliRunner()


def _invoke(db_path: Path, *args: str, policy: str = "counter"):
    return runner.invoke(app, ["--db-path", str(db_path), "--id-policy", policy, *args])


def _add_voter(db_path: Path, name: str, case_id: int = 1, policy: str = "counter"):
    return _invoke(
        db_path,
        "add-voter",
        "--case-id", str(case_id),
        "--voter", name,
        "--amount-hold", "100",
        "--vote-credit", "10",
        policy=policy,
    )


def test_add_and_get_voter(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"

    result = _add_voter(db_path, "alice")
    assert result.exit_code == 0
    assert result.stdout.strip() == "1"

    result = _invoke(db_path, "get-voter", "1")
    assert result.exit_code == 0
    record = json.loads(result.stdout)
    assert record["voter"] == "alice"
    assert record["voter_id"] == 1


def test_get_absent_voter_is_not_an_error(tmp_path: Path) -> None:
    result = _invoke(tmp_path / "votes.db", "get-voter", "5")

    assert result.exit_code == 0
    assert "No voter with id 5" in result.stdout


def test_remove_absent_vote_fails(tmp_path: Path) -> None:
    result = _invoke(tmp_path / "votes.db", "remove-vote", "999")

    assert result.exit_code == 1
    assert "vote_not_found" in result.output


def test_invalid_record_rejected(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"
    result = _invoke(
        db_path,
        "add-vote",
        "--case-id", "1",
        "--evidence-id", "2",
        "--voter", "alice",
        "--yes-credit", "300",
    )

    assert result.exit_code == 1
    assert RecordStore(db_path).list_votes() == []


def test_size_policy_reissue_scenario(tmp_path: Path) -> None:
    db_path = tmp_path / "legacy.db"
    assert _add_voter(db_path, "alice", policy="size").stdout.strip() == "1"
    assert _add_voter(db_path, "bob", policy="size").stdout.strip() == "2"
    assert _invoke(db_path, "remove-voter", "1", policy="size").exit_code == 0

    result = _add_voter(db_path, "carol", case_id=2, policy="size")

    assert result.stdout.strip() == "2"


def test_list_votes_by_evidence(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"
    for evidence_id in ("4", "8", "4"):
        result = _invoke(
            db_path,
            "add-vote",
            "--case-id", "1",
            "--evidence-id", evidence_id,
            "--voter", "alice",
            "--yes-credit", "1",
        )
        assert result.exit_code == 0

    result = _invoke(db_path, "list-votes", "--evidence-id", "4")

    assert result.exit_code == 0
    assert [item["vote_id"] for item in json.loads(result.stdout)] == [1, 3]


def test_update_voter_replaces(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"
    _ = _add_voter(db_path, "alice")

    result = _invoke(
        db_path,
        "update-voter", "1",
        "--case-id", "9",
        "--voter", "dave",
        "--amount-hold", "0",
        "--vote-credit", "0",
    )

    assert result.exit_code == 0
    voters = json.loads(_invoke(db_path, "list-voters").stdout)
    assert voters == [
        {"case_id": 9, "voter": "dave", "amount_hold": 0, "vote_credit": 0, "voter_id": 1}
    ]


def test_upload_and_set_code(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"
    source = tmp_path / "logic.txt"
    source.write_text("new logic\n")

    uploaded = _invoke(db_path, "upload-code", str(source))
    assert uploaded.exit_code == 0
    digest = uploaded.stdout.strip()

    assert _invoke(db_path, "set-code", digest).exit_code == 0
    stats = json.loads(_invoke(db_path, "stats").stdout)
    assert stats["code_hash"] == digest

    rejected = _invoke(db_path, "set-code", "ff" * 32)
    assert rejected.exit_code == 1


def test_load_and_dump(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"
    records_file = tmp_path / "records.yaml"
    with open(records_file, "w") as f:
        yaml.dump(
            {"voters": [{"case_id": 1, "voter": "erin", "amount_hold": 5, "vote_credit": 1}]},
            f,
        )

    result = _invoke(db_path, "load", str(records_file), "--no-progress")
    assert result.exit_code == 0
    assert "Loaded 1 voter(s) and 0 vote(s)" in result.stdout

    out = tmp_path / "dump.yaml"
    assert _invoke(db_path, "dump", str(out)).exit_code == 0
    with open(out) as f:
        assert yaml.safe_load(f)["voters"][0]["voter"] == "erin"


def test_config_file_is_used(tmp_path: Path) -> None:
    config_file = tmp_path / "store.yaml"
    db_path = tmp_path / "from_config.db"
    with open(config_file, "w") as f:
        yaml.dump({"db_path": str(db_path), "id_policy": "size"}, f)

    result = runner.invoke(app, ["--config", str(config_file), "init"])

    assert result.exit_code == 0
    assert "size" in result.stdout
    assert db_path.exists()


def test_missing_config_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--config", str(tmp_path / "absent.yaml"), "init"])

    assert result.exit_code == 1


def test_out_of_range_ids_rejected(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"

    for args in (
        ("get-voter", str(2**64)),
        ("remove-vote", str(2**32)),
        ("update-voter", str(2**33), "--case-id", "1", "--voter", "x",
         "--amount-hold", "0", "--vote-credit", "0"),
        ("list-votes", "--evidence-id", str(2**40)),
    ):
        result = _invoke(db_path, *args)

        assert result.exit_code == 2
        assert not isinstance(result.exception, OverflowError)
        assert "Invalid value" in result.output


def test_list_output_is_json_records(tmp_path: Path) -> None:
    db_path = tmp_path / "votes.db"
    big = str(2**100)
    result = _invoke(
        db_path,
        "add-voter",
        "--case-id", "3",
        "--voter", "frank",
        "--amount-hold", big,
        "--vote-credit", "1",
    )
    assert result.exit_code == 0

    listed = json.loads(_invoke(db_path, "list-voters").stdout)
    single = json.loads(_invoke(db_path, "get-voter", "1").stdout)

    assert listed == [single]
    assert listed[0]["amount_hold"] == 2**100
    assert json.loads(_invoke(db_path, "list-votes").stdout) == []
