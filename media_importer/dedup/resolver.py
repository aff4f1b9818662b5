"""
Duplicate resolution: decides whether a candidate file is skipped, copied as
new, or copied as a higher-quality version of an archived file.

Quality is approximated by file size: for the same file name and capture
time, the larger file is assumed to be the better copy (e.g. a camera
original versus a recompressed cloud download). No pixel or bitrate
inspection is done.
"""
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .. import config
from ..exceptions import ResolutionIOError
from ..models import Decision, MediaFile, Resolution
from ..metadata.extract import MetadataExtractor
from ..scanning.fingerprint import fingerprint
from .index import ExistingIndex


def decide(candidate_size: Optional[int], matches: Sequence[MediaFile]) -> Decision:
    """
    The decision table for one candidate against its fingerprint matches.

    No matches -> COPY_AS_NEW. A match of equal size, or any match at least
    as large as the candidate -> SKIP. Larger than every match ->
    COPY_AS_HIGHER_QUALITY.
    """
    if not matches:
        return Decision.COPY_AS_NEW
    if candidate_size is None:
        raise ValueError("candidate size is required when the fingerprint matched")
    if any(m.size_bytes == candidate_size for m in matches):
        return Decision.SKIP
    if any(candidate_size <= m.size_bytes for m in matches):
        return Decision.SKIP
    return Decision.COPY_AS_HIGHER_QUALITY


class DuplicateResolver:
    def __init__(self, index: ExistingIndex, metadata: Optional[MetadataExtractor] = None):
        self.index = index
        self.metadata = metadata or MetadataExtractor()

    def resolve(self, path: Path) -> Resolution:
        """
        Resolves one discovered file. The candidate's size is only read when
        its fingerprint hits the index.

        Raises:
            ResolutionIOError: if the size of a matched candidate cannot be read.
        """
        captured = self.metadata.capture_timestamp(path) or config.EPOCH
        candidate = MediaFile(path=path, captured=captured)
        matches = self.index.lookup(fingerprint(candidate.name, captured))

        if not matches:
            logging.debug(f"{path}: no existing file with this name and capture time")
            return Resolution(candidate, Decision.COPY_AS_NEW, reason="no match")

        try:
            size = candidate.resolve_size()
        except OSError as e:
            raise ResolutionIOError(f"failed to get size of {path}: {e}") from e

        decision = decide(size, matches)
        reason = self._describe(decision, size, matches)
        logging.debug(f"{path}: {reason}")
        return Resolution(candidate, decision, matches=matches, reason=reason)

    @staticmethod
    def _describe(decision: Decision, size: int, matches: List[MediaFile]) -> str:
        same = next((m for m in matches if m.size_bytes == size), None)
        if same is not None:
            return f"duplicate of {same.path} (both {size} bytes)"
        largest = max(matches, key=lambda m: m.size_bytes)
        if decision is Decision.SKIP:
            return f"lower-quality version of {largest.path} ({size} <= {largest.size_bytes} bytes)"
        return f"higher-quality version of {largest.path} ({size} > {largest.size_bytes} bytes)"
