"""Tests for commits and history traversal."""

import pytest

from twig import (
    CommitRecord,
    CorruptHistory,
    History,
    InvalidOperation,
    NotFound,
    NothingToCommit,
    ObjectStore,
    Refs,
    StagingEntry,
    StagingIndex,
)
from twig.kv.memory import Memory


def _fixed_clock():
    return "2024-01-01T00:00:00.000+00:00"


def _setup(clock=_fixed_clock):
    store = Memory()
    store.set("HEAD", b"ref: refs/heads/main")
    objects = ObjectStore(store)
    refs = Refs(store)
    return store, objects, refs, History(objects, refs, clock=clock)


def _stage(objects, index, path, content):
    index.stage(path, objects.put(content))


class TestCommit:
    def test_empty_index_fails(self):
        store, _, _, history = _setup()
        with pytest.raises(NothingToCommit):
            history.commit(StagingIndex(store), "msg")

    def test_blank_message_fails(self):
        store, objects, _, history = _setup()
        index = StagingIndex(store)
        _stage(objects, index, "a", b"1")
        with pytest.raises(InvalidOperation):
            history.commit(index, "   ")
        assert index.paths() == ["a"]

    def test_commit_advances_branch_and_clears_index(self):
        store, objects, refs, history = _setup()
        index = StagingIndex(store)
        _stage(objects, index, "a", b"1")
        digest = history.commit(index, "first")
        assert refs.branch_head("main") == digest
        assert index.snapshot() == ()

        record = objects.get_commit(digest)
        assert record.parent is None
        assert record.branch == "main"
        assert record.message == "first"
        assert record.files == (StagingEntry("a", objects.put(b"1")),)

    def test_parent_is_previous_head(self):
        store, objects, _, history = _setup()
        index = StagingIndex(store)
        _stage(objects, index, "a", b"1")
        first = history.commit(index, "first")
        _stage(objects, index, "a", b"2")
        second = history.commit(index, "second")
        assert objects.get_commit(second).parent == first

    def test_same_inputs_same_digest(self):
        results = []
        for _ in range(2):
            store, objects, _, history = _setup()
            index = StagingIndex(store)
            _stage(objects, index, "a", b"1")
            results.append(history.commit(index, "same"))
        assert results[0] == results[1]

    def test_detached_commit_moves_head(self):
        store, objects, refs, history = _setup()
        index = StagingIndex(store)
        _stage(objects, index, "a", b"1")
        first = history.commit(index, "first")
        refs.detach(first)
        _stage(objects, index, "b", b"2")
        second = history.commit(index, "second")
        assert refs.read_head() == second
        assert refs.branch_head("main") == first
        assert objects.get_commit(second).branch == "detached HEAD"


class TestLog:
    def _chain(self, n):
        ticks = iter(range(100))
        store, objects, refs, history = _setup(
            clock=lambda: f"2024-01-01T00:00:{next(ticks):02d}.000+00:00"
        )
        index = StagingIndex(store)
        digests = []
        for i in range(n):
            _stage(objects, index, "f", str(i).encode())
            digests.append(history.commit(index, f"c{i}"))
        return store, objects, refs, history, digests

    def test_empty_branch(self):
        _, _, _, history = _setup()
        assert list(history.log()) == []

    def test_visits_chain_newest_first(self):
        _, _, _, history, digests = self._chain(3)
        assert [e.digest for e in history.log()] == list(reversed(digests))
        assert [e.record.message for e in history.log()] == ["c2", "c1", "c0"]

    def test_log_from_specific_commit(self):
        _, _, _, history, digests = self._chain(3)
        assert [e.digest for e in history.log(digests[1])] == [digests[1], digests[0]]

    def test_log_is_lazy(self):
        _, _, _, history, digests = self._chain(3)
        it = history.log()
        assert next(it).digest == digests[-1]

    def test_cycle_detected(self):
        store, objects, refs, history = _setup()
        # A record whose parent is itself cannot be produced by commit(),
        # so fake it by pointing a branch at a self-referencing chain.
        a = CommitRecord("t", "a", (), parent=None, branch="main")
        a_digest = objects.put_commit(a)
        b = CommitRecord("t", "b", (), parent=a_digest, branch="main")
        b_digest = objects.put_commit(b)
        loop = CommitRecord("t", "loop", (), parent=b_digest, branch="main")
        loop_digest = objects.put_commit(loop)
        # Overwrite a's object so that it points back at loop.
        store.set(
            f"objects/{a_digest}",
            CommitRecord("t", "a", (), parent=loop_digest, branch="main").to_bytes(),
        )
        refs.set_branch_head("main", loop_digest)
        with pytest.raises(CorruptHistory):
            list(history.log())

    def test_missing_parent(self):
        _, objects, refs, history = _setup()
        orphan = objects.put_commit(
            CommitRecord("t", "orphan", (), parent="0" * 40, branch="main")
        )
        refs.set_branch_head("main", orphan)
        with pytest.raises(NotFound):
            list(history.log())

    def test_graph_is_single_path(self):
        _, _, _, history, digests = self._chain(3)
        lines = history.graph()
        assert [line.digest for line in lines] == list(reversed(digests))
        assert [line.prefix for line in lines] == ["└── ", "    └── ", "        └── "]
        assert lines[0].short == digests[-1][:7]


class TestShow:
    def _two_commits(self):
        store, objects, refs, history = _setup(clock=iter(["t1", "t2"]).__next__)
        index = StagingIndex(store)
        _stage(objects, index, "a.txt", b"one\ntwo\n")
        first = history.commit(index, "first")
        _stage(objects, index, "a.txt", b"one\nthree\n")
        _stage(objects, index, "b.txt", b"new\n")
        second = history.commit(index, "second")
        return history, first, second

    def test_initial_commit_all_added(self):
        history, first, _ = self._two_commits()
        result = history.show(first)
        assert result.initial
        assert [(c.path, c.status) for c in result.files] == [("a.txt", "added")]

    def test_changes_against_parent(self):
        history, _, second = self._two_commits()
        result = history.show(second)
        assert not result.initial
        changes = {c.path: c for c in result.files}
        assert changes["b.txt"].status == "added"
        assert changes["a.txt"].status == "modified"
        tags = [(p.tag, p.text) for p in changes["a.txt"].diff]
        assert tags == [("equal", "one\n"), ("removed", "two\n"), ("added", "three\n")]

    def test_unchanged_file(self):
        store, objects, _, history = _setup(clock=iter(["t1", "t2"]).__next__)
        index = StagingIndex(store)
        _stage(objects, index, "a", b"same\n")
        history.commit(index, "first")
        _stage(objects, index, "a", b"same\n")
        second = history.commit(index, "again")
        (change,) = history.show(second).files
        assert change.status == "unchanged"
        assert [p.tag for p in change.diff] == ["equal"]

    def test_prefix_resolution(self):
        history, first, _ = self._two_commits()
        assert history.show(first[:8]).digest == first

    def test_unknown_digest(self):
        history, _, _ = self._two_commits()
        with pytest.raises(NotFound):
            history.show("0" * 40)
        with pytest.raises(NotFound):
            history.show("zz")

    def test_blob_digest_is_not_a_commit(self):
        store, objects, _, history = _setup()
        blob = objects.put(b"data")
        with pytest.raises(NotFound):
            history.show(blob)
