import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .models import Decision, Resolution


@dataclass
class RunStatistics:
    """Counters for a single import run, reported once at the end."""
    found: int = 0
    matched_existing: int = 0
    skipped: int = 0
    copied_as_higher_quality: int = 0
    copied_as_new: int = 0
    indexed: int = 0
    index_failures: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def copied(self) -> int:
        return self.copied_as_new + self.copied_as_higher_quality

    def record_found(self):
        self.found += 1

    def record_resolution(self, resolution: Resolution):
        if resolution.matches:
            self.matched_existing += 1
        if resolution.decision is Decision.SKIP:
            self.skipped += 1

    def record_copy(self, resolution: Resolution):
        if resolution.decision is Decision.COPY_AS_HIGHER_QUALITY:
            self.copied_as_higher_quality += 1
        elif resolution.decision is Decision.COPY_AS_NEW:
            self.copied_as_new += 1

    def record_error(self, path: Path, message: str):
        self.errors.append((str(path), message))

    def summary_lines(self) -> List[str]:
        lines = [
            f"Indexed existing files:       {self.indexed} ({self.index_failures} failed)",
            f"Files found:                  {self.found}",
            f"Matched existing:             {self.matched_existing}",
            f"Skipped:                      {self.skipped}",
            f"Copied as new:                {self.copied_as_new}",
            f"Copied as higher quality:     {self.copied_as_higher_quality}",
        ]
        if self.errors:
            lines.append(f"Errors:                       {len(self.errors)}")
        return lines

    def log_summary(self):
        logging.info("=== Import Summary ===")
        for line in self.summary_lines():
            logging.info(line)
        for path, message in self.errors:
            logging.error(f"  {path}: {message}")


class DecisionReport:
    """
    Optional CSV log with one row per resolved candidate.
    Use as a context manager; rows are written as they are decided.
    """

    HEADERS = [
        "Source Path",
        "Decision",
        "Destination Path",
        "Matched Existing",
        "Notes",
    ]

    def __init__(self, output_csv: Path):
        self.output_csv = Path(output_csv)
        self._file = None
        self._writer = None

    def __enter__(self):
        self.output_csv.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.output_csv, "w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._file)
        self._writer.writerow(self.HEADERS)
        logging.info(f"Writing decision report to {self.output_csv}")
        return self

    def __exit__(self, exc_type, exc, tb):
        self._file.close()
        self._file = None
        self._writer = None

    def write(self, resolution: Resolution, destination: Optional[Path] = None):
        matched = ";".join(str(m.path) for m in resolution.matches)
        self._writer.writerow([
            str(resolution.candidate.path),
            resolution.decision.value,
            str(destination) if destination else "",
            matched,
            resolution.reason,
        ])
