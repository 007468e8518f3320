"""Tests for record encoding."""

import json

import pytest

from twig import CommitRecord, CorruptObject, StagingEntry
from twig.records import decode_index, encode_index, is_commit


def _commit(**overrides):
    fields = dict(
        timestamp="2024-05-01T12:00:00.000+00:00",
        message="msg",
        files=(StagingEntry("a", "1" * 40), StagingEntry("b/c", "2" * 40)),
        parent="3" * 40,
        branch="main",
    )
    fields.update(overrides)
    return CommitRecord(**fields)


class TestCommitRecord:
    def test_encoding_is_tagged_and_versioned(self):
        data = json.loads(_commit().to_bytes())
        assert data["type"] == "commit"
        assert data["version"] == 1
        assert data["files"][1] == {"path": "b/c", "hash": "2" * 40}

    def test_encoding_is_deterministic(self):
        assert _commit().to_bytes() == _commit().to_bytes()

    def test_decode_restores_record(self):
        record = _commit(parent=None)
        assert CommitRecord.from_bytes(record.to_bytes()) == record

    def test_file_order_preserved(self):
        record = _commit()
        decoded = CommitRecord.from_bytes(record.to_bytes())
        assert [f.path for f in decoded.files] == ["a", "b/c"]

    def test_file_map_and_find(self):
        record = _commit()
        assert record.file_map() == {"a": "1" * 40, "b/c": "2" * 40}
        assert record.find("b/c") == StagingEntry("b/c", "2" * 40)
        assert record.find("missing") is None

    def test_unknown_version_rejected(self):
        data = json.loads(_commit().to_bytes())
        data["version"] = 99
        with pytest.raises(CorruptObject, match="version"):
            CommitRecord.from_bytes(json.dumps(data).encode())

    def test_non_commit_rejected(self):
        with pytest.raises(CorruptObject):
            CommitRecord.from_bytes(b"plain file contents")
        assert not is_commit(b"\xff\xfe")
        assert is_commit(_commit().to_bytes())

    def test_missing_field_rejected(self):
        data = json.loads(_commit().to_bytes())
        del data["branch"]
        with pytest.raises(CorruptObject):
            CommitRecord.from_bytes(json.dumps(data).encode())


class TestIndexEncoding:
    def test_order_preserved(self):
        entries = [StagingEntry("z", "1" * 40), StagingEntry("a", "2" * 40)]
        assert decode_index(encode_index(entries)) == entries

    def test_empty(self):
        assert decode_index(encode_index([])) == []

    def test_wrong_type_rejected(self):
        with pytest.raises(CorruptObject):
            decode_index(_commit().to_bytes())
