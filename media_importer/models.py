from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass
class MediaFile:
    """
    A media file known to the importer, either already archived or a
    candidate found during the search crawl.

    `size_bytes` is filled eagerly for indexed files and lazily (via
    `resolve_size`) for candidates, which only need it on a fingerprint hit.
    """
    path: Path
    captured: datetime
    size_bytes: Optional[int] = None

    @property
    def name(self) -> str:
        return self.path.name

    def resolve_size(self) -> int:
        """Stats the file once and caches the result. Raises OSError."""
        if self.size_bytes is None:
            self.size_bytes = self.path.stat().st_size
        return self.size_bytes


class Decision(str, Enum):
    SKIP = "skip"
    COPY_AS_NEW = "copy_as_new"
    COPY_AS_HIGHER_QUALITY = "copy_as_higher_quality"

    @property
    def requires_copy(self) -> bool:
        return self is not Decision.SKIP


@dataclass
class Resolution:
    """Outcome of resolving one candidate against the existing index."""
    candidate: MediaFile
    decision: Decision
    matches: List[MediaFile] = field(default_factory=list)
    reason: str = ""
