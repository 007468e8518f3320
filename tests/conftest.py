import itertools

import pytest

from twig import repository


class TickingClock:
    """Deterministic timestamps, one second apart."""

    def __init__(self) -> None:
        self._ticks = itertools.count()

    def __call__(self) -> str:
        n = next(self._ticks)
        return f"2024-01-01T00:{n // 60:02d}:{n % 60:02d}.000+00:00"


@pytest.fixture
def work(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    return root


@pytest.fixture
def repo(work):
    return repository(str(work), create=True, clock=TickingClock())


@pytest.fixture
def write(work):
    def _write(rel_path: str, content: str) -> str:
        path = work.joinpath(*rel_path.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return str(path)

    return _write
