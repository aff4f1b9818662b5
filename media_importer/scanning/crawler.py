import os
import logging
from pathlib import Path
from typing import Iterable, Iterator, Set


def matches_extension(path: Path, extensions: Set[str]) -> bool:
    """True if the file's suffix (case-insensitive, without the dot) is configured."""
    return path.suffix[1:].lower() in extensions if path.suffix else False


class MediaCrawler:
    """Lazily walks root directories and yields files with a configured extension."""

    def find_media_files(self, roots: Iterable[str], extensions: Set[str]) -> Iterator[Path]:
        """
        Generator over every matching file below each of `roots`, in root order.
        Unreadable directories are logged and skipped.
        """
        for root in roots:
            root_path = Path(root)
            if not root_path.is_dir():
                logging.warning(f"Search root {root_path} is not a directory, skipping.")
                continue
            for path in self.iter_files(root_path):
                # AppleDouble resource forks share the media suffix but carry no media
                if path.name.startswith("._"):
                    continue
                if matches_extension(path, extensions):
                    yield path

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError:
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file():
                    files.append(Path(e.path))

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f
