"""Tests for working-tree sync and ignore rules."""

import pytest

from twig import InvalidOperation, NotFound, ObjectStore, StagingEntry, WorkTree, hash_bytes
from twig.kv.memory import Memory
from twig.worktree import is_ignored, load_ignore_patterns


@pytest.fixture
def tree(work):
    return WorkTree(str(work), repo_dir=".twig", ignore_file=".twigignore")


class TestIgnorePatterns:
    def test_load_skips_blank_and_comments(self, work):
        (work / ".twigignore").write_text("# comment\n\n*.log\n  build/  \n")
        assert load_ignore_patterns(str(work / ".twigignore")) == ["*.log", "build/"]

    def test_missing_file(self, work):
        assert load_ignore_patterns(str(work / ".twigignore")) == []

    def test_glob_matches_any_depth(self):
        assert is_ignored("debug.log", ["*.log"])
        assert is_ignored("a/b/debug.log", ["*.log"])
        assert not is_ignored("debug.txt", ["*.log"])

    def test_directory_pattern(self):
        assert is_ignored("build", ["build/"])
        assert is_ignored("build/out/x.o", ["build/"])
        assert not is_ignored("builder/x", ["build/"])

    def test_path_pattern(self):
        assert is_ignored("docs/tmp.md", ["docs/*.md"])
        assert not is_ignored("other/tmp.md", ["docs/*.md"])


class TestIterFiles:
    def test_skips_repo_dir_and_ignored(self, tree, work, write):
        (work / ".twig").mkdir()
        (work / ".twig" / "HEAD").write_text("ref: refs/heads/main")
        write(".twigignore", "*.log\nbuild/\n")
        write("a.txt", "a")
        write("sub/b.txt", "b")
        write("sub/c.log", "c")
        write("build/out", "o")
        assert list(tree.iter_files()) == [".twigignore", "a.txt", "sub/b.txt"]

    def test_start_at_subdirectory(self, tree, write):
        write("a.txt", "a")
        write("sub/b.txt", "b")
        assert list(tree.iter_files("sub")) == ["sub/b.txt"]

    def test_single_file(self, tree, write):
        write("sub/b.txt", "b")
        assert list(tree.iter_files("sub/b.txt")) == ["sub/b.txt"]


class TestRelative:
    def test_relative_path(self, tree, work):
        assert tree.relative(str(work / "sub" / "x.txt")) == "sub/x.txt"
        assert tree.relative(str(work)) == ""

    def test_outside_root(self, tree, work):
        with pytest.raises(InvalidOperation):
            tree.relative(str(work.parent / "elsewhere"))

    def test_inside_repo_dir(self, tree, work):
        with pytest.raises(InvalidOperation):
            tree.relative(str(work / ".twig" / "HEAD"))


class TestRestore:
    def test_writes_files_and_directories(self, tree, work):
        objects = ObjectStore(Memory())
        files = [
            StagingEntry("a.txt", objects.put(b"A")),
            StagingEntry("deep/er/b.txt", objects.put(b"B")),
        ]
        tree.restore(objects, files)
        assert (work / "a.txt").read_bytes() == b"A"
        assert (work / "deep" / "er" / "b.txt").read_bytes() == b"B"

    def test_does_not_prune(self, tree, work, write):
        write("extra.txt", "keep me")
        objects = ObjectStore(Memory())
        tree.restore(objects, [StagingEntry("a.txt", objects.put(b"A"))])
        assert (work / "extra.txt").read_text() == "keep me"

    def test_missing_blob_writes_nothing(self, tree, work):
        objects = ObjectStore(Memory())
        files = [
            StagingEntry("a.txt", objects.put(b"A")),
            StagingEntry("b.txt", "0" * 40),
        ]
        with pytest.raises(NotFound):
            tree.restore(objects, files)
        assert not (work / "a.txt").exists()


class TestStatus:
    def test_classification(self, tree, write):
        write("staged.txt", "s")
        write("committed.txt", "original")
        write("edited.txt", "changed on disk")
        write("new.txt", "n")
        committed = {
            "committed.txt": hash_bytes(b"original"),
            "edited.txt": hash_bytes(b"as committed"),
        }
        status = tree.status(["staged.txt"], committed, branch="main", head="h" * 40)
        assert status.staged == ("staged.txt",)
        assert status.modified == ("edited.txt",)
        assert status.untracked == ("new.txt",)
        assert not status.clean

    def test_staged_wins_over_modified(self, tree, write):
        write("x.txt", "new content")
        status = tree.status(
            ["x.txt"], {"x.txt": hash_bytes(b"old")}, branch="main", head=None
        )
        assert status.staged == ("x.txt",)
        assert status.modified == ()

    def test_clean(self, tree, write):
        write("x.txt", "same")
        status = tree.status([], {"x.txt": hash_bytes(b"same")}, branch="main", head=None)
        assert status.clean
