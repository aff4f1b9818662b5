import shutil
import logging
from datetime import datetime
from pathlib import Path

from .. import config
from ..exceptions import CopyIOError
from ..models import Resolution


def date_partition(captured: datetime) -> str:
    """YYYY_MM_DD folder name for a capture time; 0000_00_00 when it is unknown."""
    if captured == config.EPOCH:
        return config.UNKNOWN_PARTITION
    return f"{captured.year:04d}_{captured.month:02d}_{captured.day:02d}"


class FileCopier:
    def __init__(self, target_root: Path):
        self.target_root = Path(target_root)

    def destination_for(self, resolution: Resolution) -> Path:
        candidate = resolution.candidate
        return self.target_root / date_partition(candidate.captured) / candidate.name

    def copy(self, resolution: Resolution) -> Path:
        """
        Copies the candidate into target_root/YYYY_MM_DD/<name>. An existing
        file of the same name at the destination is overwritten.

        Raises:
            CopyIOError: if the folder cannot be created or the copy fails.
        """
        src = resolution.candidate.path
        dest = self.destination_for(resolution)

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CopyIOError(f"Failed to create {dest.parent}: {e}") from e

        try:
            shutil.copy2(str(src), str(dest))
        except OSError as e:
            raise CopyIOError(f"Failed to copy {src} -> {dest}: {e}") from e

        logging.debug(f"Copied {src} to {dest}")
        return dest
