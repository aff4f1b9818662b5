"""
Index of already-archived media files, keyed by fingerprint.
"""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .. import config
from ..config import CollisionPolicy
from ..exceptions import IndexingIOError
from ..models import MediaFile
from ..metadata.extract import MetadataExtractor
from ..scanning.crawler import MediaCrawler
from ..scanning.fingerprint import fingerprint


class ExistingIndex:
    """
    Maps fingerprint(name, capture time) -> existing MediaFiles.

    With CollisionPolicy.LIST every file sharing a fingerprint is retained;
    with CollisionPolicy.LAST a later file replaces the earlier one, so
    lookups return at most one entry. Built once, read-only afterwards.
    """

    def __init__(self, policy: CollisionPolicy = CollisionPolicy.LIST):
        self.policy = policy
        self._entries: Dict[str, List[MediaFile]] = {}
        self.failures = 0

    def add(self, media_file: MediaFile) -> str:
        key = fingerprint(media_file.name, media_file.captured)
        if self.policy is CollisionPolicy.LAST or key not in self._entries:
            self._entries[key] = [media_file]
        else:
            self._entries[key].append(media_file)
        return key

    def lookup(self, key: str) -> List[MediaFile]:
        """Existing files for `key`; empty list on a miss."""
        return list(self._entries.get(key, ()))

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        """Number of indexed files (not distinct fingerprints)."""
        return sum(len(v) for v in self._entries.values())

    @classmethod
    def build(cls,
              roots: Iterable[str],
              extensions: Set[str],
              policy: CollisionPolicy = CollisionPolicy.LIST,
              crawler: Optional[MediaCrawler] = None,
              metadata: Optional[MetadataExtractor] = None) -> "ExistingIndex":
        """
        Crawls `roots` and indexes every matching file. A file whose size
        cannot be read is logged and left out; it never aborts the build.
        """
        crawler = crawler or MediaCrawler()
        metadata = metadata or MetadataExtractor()
        index = cls(policy)

        for path in crawler.find_media_files(roots, extensions):
            try:
                media_file = cls._describe(path, metadata)
            except IndexingIOError as e:
                logging.warning(f"Failed to index {path}: {e}")
                index.failures += 1
                continue
            index.add(media_file)
            logging.debug(f"Indexed {path} ({media_file.size_bytes} bytes, {media_file.captured.isoformat()})")

        logging.info(f"Indexed {len(index)} existing files ({index.failures} failed).")
        return index

    @staticmethod
    def _describe(path: Path, metadata: MetadataExtractor) -> MediaFile:
        captured = metadata.capture_timestamp(path) or config.EPOCH
        try:
            size = path.stat().st_size
        except OSError as e:
            raise IndexingIOError(f"failed to get size of {path}: {e}") from e
        return MediaFile(path=path, captured=captured, size_bytes=size)
