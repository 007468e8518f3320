"""twig error types."""


class TwigError(Exception):
    """Base class for every error an operation can surface to the user."""


class NotFound(TwigError):
    """Raised when an object, commit, branch or remote branch is missing."""


class NotARepository(NotFound):
    """Raised when no repository directory exists at the given root."""


class AlreadyExists(TwigError):
    """Raised when creating a branch or ref whose name is taken."""


class NothingToCommit(TwigError):
    """Raised when committing with an empty staging index."""


class InvalidOperation(TwigError):
    """Raised for operations that are not allowed in the current state.

    Examples: deleting the checked-out branch, merging a branch into
    itself, or a filesystem permission error.
    """


class BranchHasNoCommits(InvalidOperation):
    """Raised when merging a branch whose ref is still empty."""


class MergeConflict(TwigError):
    """Raised when both sides of a merge hold a path with different digests.

    Attributes:
        conflicting_paths: The set of paths that could not be merged.
    """

    def __init__(self, conflicting_paths: set[str]) -> None:
        self.conflicting_paths = conflicting_paths
        paths_str = ", ".join(sorted(conflicting_paths))
        super().__init__(f"Merge conflict on paths: {paths_str}")


class CorruptHistory(TwigError):
    """Raised when walking the parent chain revisits a commit."""


class CorruptObject(TwigError):
    """Raised when a stored object cannot be decoded as the expected record."""
