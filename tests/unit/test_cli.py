"""Tests for the zkpool command-line tool."""

import json

import pytest

from zkpool.cli import main
from zkpool.core.note import decode_note
from zkpool.crypto.hasher import get_hasher
from zkpool.storage.database import reset_note_store

LEAVES = ["00" * 31 + "01", "00" * 31 + "02", "00" * 31 + "03"]


@pytest.fixture
def leaves_file(tmp_path):
    path = tmp_path / "leaves.json"
    path.write_text(json.dumps(LEAVES))
    return str(path)


class TestRootCommand:
    def test_root(self, leaves_file, capsys):
        assert main(["root", "--leaves", leaves_file, "--hasher", "sha256", "--depth", "4"]) == 0
        assert capsys.readouterr().out.strip() == (
            "048f142472bf6992804fc53e8163e5af2e0c730ba606cb4bad9a92ec524f253f"
        )

    def test_snapshot_object(self, tmp_path, capsys):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"leaves": ["0x" + leaf for leaf in LEAVES]}))
        assert main(["root", "--leaves", str(path), "--hasher", "sha256", "--depth", "4"]) == 0
        assert capsys.readouterr().out.strip().startswith("048f1424")

    def test_invalid_leaf_file(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(["abcd"]))
        assert main(["root", "--leaves", str(path)]) == 1
        assert "error:" in capsys.readouterr().err


class TestPathCommand:
    def test_path(self, leaves_file, capsys):
        code = main([
            "path", "--leaves", leaves_file, "--commitment", LEAVES[2],
            "--hasher", "sha256", "--depth", "4",
        ])
        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["leaf_index"] == 2
        assert output["path_indices"] == [0, 1, 0, 0]
        assert output["root"].startswith("048f1424")
        assert len(output["siblings"]) == 4

    def test_not_found(self, leaves_file, capsys):
        code = main(["path", "--leaves", leaves_file, "--commitment", "ff" * 32, "--depth", "4"])
        assert code == 1
        assert "not in leaf set" in capsys.readouterr().err


class TestNoteCommands:
    def test_new_and_inspect(self, capsys):
        assert main(["note", "new", "--amount", "1000", "--hasher", "sha256"]) == 0
        encoded = capsys.readouterr().out.strip()
        note = decode_note(encoded, get_hasher("sha256"))
        assert note.amount == 1000

        assert main(["note", "inspect", encoded, "--hasher", "sha256"]) == 0
        details = json.loads(capsys.readouterr().out)
        assert details["amount"] == 1000
        assert details["commitment"] == note.commitment.hex()

    def test_inspect_garbage(self, capsys):
        assert main(["note", "inspect", "%%%"]) == 1

    def test_invalid_amount(self, capsys):
        assert main(["note", "new", "--amount", "0"]) == 1

    def test_save_and_list(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("ZKPOOL_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
        reset_note_store()
        try:
            assert main(["note", "new", "--amount", "77", "--save"]) == 0
            capsys.readouterr()
            assert main(["note", "list"]) == 0
            assert "  77  -" in capsys.readouterr().out
        finally:
            reset_note_store()
