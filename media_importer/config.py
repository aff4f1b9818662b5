"""
Configuration constants and config file loading for the media importer.
"""
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

import yaml

from .exceptions import InvalidConfiguration

# --- File Type Definitions ---
# Suffixes routed to the video metadata strategy; everything else is read as an image.
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.avi', '.mts', '.m2ts', '.3gp', '.mpg', '.mpeg', '.tod'}

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# Offset tag paired with each entry of DATE_TAGS
OFFSET_TAGS = {
    'EXIF DateTimeOriginal': 'EXIF OffsetTimeOriginal',
    'EXIF DateTimeDigitized': 'EXIF OffsetTimeDigitized',
    'Image DateTime': 'EXIF OffsetTime',
}

VIDEO_DATE_FIELDS = ["recorded_date", "encoded_date", "tagged_date"]
EXIFTOOL_DATE_FIELDS = ["CreateDate", "CreationDate", "DateTimeOriginal", "MediaCreateDate"]

# Default capture time for files without metadata
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# --- Organization ---
UNKNOWN_PARTITION = "0000_00_00"

DEFAULT_CONFIG_FILE = "config.toml"
LOG_FILE_NAME = "importer.log"


class CollisionPolicy(str, Enum):
    """What the index does when two existing files share a fingerprint."""
    LIST = "list"   # keep all of them
    LAST = "last"   # last-write-wins


def build_extension_set(extensions: Iterable[str]) -> Set[str]:
    """
    Normalizes configured extensions ("jpg", "MP4") into a lookup set of
    lower-case suffixes without the dot.

    Raises:
        InvalidConfiguration: if an entry is empty or contains a '.'.
    """
    exts = set()
    for ext in extensions:
        if not isinstance(ext, str):
            raise InvalidConfiguration(f"extensions must be strings but got {ext!r}")
        if '.' in ext:
            raise InvalidConfiguration(f"extensions must not contain '.' but got '{ext}'")
        if not ext.strip():
            raise InvalidConfiguration("extensions must not be empty")
        exts.add(ext.strip().lower())
    return exts


@dataclass(frozen=True)
class ImportConfig:
    """Immutable run configuration loaded from a TOML or YAML file."""

    extensions: List[str]
    search_paths: List[str]
    target_dir: Path
    existing_paths: List[str] = field(default_factory=list)
    collision_policy: CollisionPolicy = CollisionPolicy.LIST
    keep_going: bool = False
    report_csv: Optional[Path] = None

    def extension_set(self) -> Set[str]:
        return build_extension_set(self.extensions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportConfig":
        if not isinstance(data, dict):
            raise InvalidConfiguration("configuration must be a mapping of keys to values")

        target = data.get("target_dir", data.get("output_path"))
        if not isinstance(target, str) or not target:
            raise InvalidConfiguration("one of 'target_dir' or 'output_path' must be set to a path")

        policy_value = data.get("collision_policy", CollisionPolicy.LIST.value)
        try:
            policy = CollisionPolicy(policy_value)
        except ValueError:
            choices = ", ".join(p.value for p in CollisionPolicy)
            raise InvalidConfiguration(
                f"collision_policy must be one of {choices} but got {policy_value!r}"
            ) from None

        keep_going = data.get("keep_going", False)
        if not isinstance(keep_going, bool):
            raise InvalidConfiguration(f"keep_going must be true or false but got {keep_going!r}")

        report_csv = data.get("report_csv")
        if report_csv is not None and not isinstance(report_csv, str):
            raise InvalidConfiguration(f"report_csv must be a path but got {report_csv!r}")

        return cls(
            extensions=_string_list(data, "extensions", required=True),
            search_paths=_string_list(data, "search_paths", required=True),
            existing_paths=_string_list(data, "existing_paths", required=False),
            target_dir=Path(target),
            collision_policy=policy,
            keep_going=keep_going,
            report_csv=Path(report_csv) if report_csv else None,
        )


def _string_list(data: Dict[str, Any], key: str, required: bool) -> List[str]:
    if key not in data:
        if required:
            raise InvalidConfiguration(f"missing required key '{key}'")
        return []
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidConfiguration(f"'{key}' must be a list of strings but got {value!r}")
    return list(value)


def load_config(path: Path) -> ImportConfig:
    """
    Loads an ImportConfig from `path`. The suffix selects the parser:
    .toml -> tomllib, .yml/.yaml -> PyYAML.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in ('.toml', '.yml', '.yaml'):
        raise InvalidConfiguration(f"unsupported config format '{path.suffix}' for {path}")

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise InvalidConfiguration(f"cannot read config file {path}: {e}") from e

    try:
        if suffix == '.toml':
            data = tomllib.loads(raw.decode("utf-8"))
        else:
            data = yaml.safe_load(raw) or {}
    except (tomllib.TOMLDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise InvalidConfiguration(f"failed to parse {path}: {e}") from e

    return ImportConfig.from_dict(data)
