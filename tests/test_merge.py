"""Tests for the path-level merge functions."""

from twig import StagingEntry, detect_conflicts, merge_files


def _files(**paths):
    return [StagingEntry(path, digest) for path, digest in paths.items()]


class TestDetectConflicts:
    def test_differing_digest_conflicts(self):
        base = _files(a="1", b="1")
        incoming = _files(b="2", c="1")
        assert detect_conflicts(base, incoming) == {"b"}

    def test_same_digest_is_not_a_conflict(self):
        assert detect_conflicts(_files(a="1"), _files(a="1")) == set()

    def test_one_sided_paths_never_conflict(self):
        assert detect_conflicts(_files(a="1"), _files(b="2")) == set()
        assert detect_conflicts([], _files(b="2")) == set()


class TestMergeFiles:
    def test_additive(self):
        merged = merge_files(_files(a="1"), _files(b="1"))
        assert merged == (StagingEntry("a", "1"), StagingEntry("b", "1"))

    def test_base_wins_on_shared_paths(self):
        merged = merge_files(_files(a="1", b="1"), _files(b="1", c="3"))
        assert [e.path for e in merged] == ["a", "b", "c"]

    def test_empty_base(self):
        assert merge_files([], _files(x="9")) == (StagingEntry("x", "9"),)
