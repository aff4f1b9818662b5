import pytest
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from media_importer.metadata.extract import MetadataExtractor


class StubMetadata(MetadataExtractor):
    """Capture times looked up by full path first, then by file name."""

    def __init__(self):
        self.times = {}
        self.calls = []

    def set(self, key, dt: datetime):
        self.times[str(key)] = dt

    def capture_timestamp(self, path: Path) -> Optional[datetime]:
        self.calls.append(path)
        return self.times.get(str(path), self.times.get(path.name))


@pytest.fixture
def stub_metadata():
    return StubMetadata()


@pytest.fixture
def make_file(tmp_path):
    """Creates a file of `size` bytes below tmp_path and returns its path."""
    def _make(relpath: str, size: int = 10) -> Path:
        p = tmp_path / relpath
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(b"x" * size)
        return p
    return _make


@pytest.fixture
def jan1():
    return datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def jan2():
    return datetime(2024, 1, 2, 9, 30, 0, tzinfo=timezone.utc)
