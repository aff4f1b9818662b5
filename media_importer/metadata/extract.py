import logging
import subprocess
import json
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict

import exifread
from pymediainfo import MediaInfo

from .. import config


class MetadataExtractor:
    """
    Looks up the capture timestamp of a media file.

    Strategies:
      - Images: Uses 'exifread' (fast, Python-native).
      - Video: Uses 'pymediainfo' (fast wrapper) -> falls back to 'exiftool' (robust).

    Every returned datetime is timezone-aware. Missing or unreadable metadata
    is not an error: the lookup returns None and callers use config.EPOCH.
    """

    def capture_timestamp(self, path: Path) -> Optional[datetime]:
        if path.suffix.lower() in config.VIDEO_EXTS:
            return self.get_video_timestamp(path)
        return self.get_image_timestamp(path)

    def get_image_timestamp(self, path: Path) -> Optional[datetime]:
        try:
            with path.open('rb') as f:
                # details=False speeds up processing significantly
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logging.warning(f"ExifRead failed for {path}: {e}")
            return None

        return self._parse_exif_date(tags)

    def get_video_timestamp(self, path: Path) -> Optional[datetime]:
        # Strategy 1: Try MediaInfo (Fastest, usually sufficient)
        try:
            dt = self._extract_mediainfo(path)
            if dt:
                return dt
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")

        # Strategy 2: Try ExifTool (Robust fallback, requires system install)
        try:
            return self._extract_exiftool(path)
        except Exception as e:
            # Only log at debug level to avoid spamming console if tool is missing
            logging.debug(f"ExifTool failed for {path}: {e}")

        return None

    def dump(self, path: Path) -> Dict[str, str]:
        """Returns every readable tag of the file as strings, for diagnostics."""
        if path.suffix.lower() in config.VIDEO_EXTS:
            mi = MediaInfo.parse(str(path))
            data = {}
            for track in mi.tracks:
                for key, value in track.to_data().items():
                    data[f"{track.track_type} {key}"] = str(value)
            return data

        with path.open('rb') as f:
            tags = exifread.process_file(f, details=False)
        return {tag: str(value) for tag, value in tags.items()}

    # --- Internal Extraction Helpers ---

    def _extract_mediainfo(self, path: Path) -> Optional[datetime]:
        """Parses video using pymediainfo."""
        mi = MediaInfo.parse(str(path))

        for track in mi.tracks:
            if track.track_type != "General":
                continue
            # Different cameras write to different tags
            for field in config.VIDEO_DATE_FIELDS:
                val = getattr(track, field, None)
                if val:
                    dt = self._parse_flexible_date(str(val))
                    if dt:
                        return dt
        return None

    def _extract_exiftool(self, path: Path) -> Optional[datetime]:
        """
        Wraps the 'exiftool' command line utility.
        Must be installed and on the system PATH.
        """
        # -j = JSON output
        # -n = No formatting (clean dates)
        cmd = ["exiftool", "-j", "-n", str(path)]
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        data_list = json.loads(out)
        if not data_list:
            return None

        tags = data_list[0]
        for field in config.EXIFTOOL_DATE_FIELDS:
            if tags.get(field):
                dt = self._parse_flexible_date(str(tags[field]))
                if dt:
                    return dt
        return None

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """Parses the first usable EXIF date, applying its offset tag if present."""
        for tag in config.DATE_TAGS:
            if tag not in tags:
                continue
            # EXIF format is "YYYY:MM:DD HH:MM:SS", offsets look like "+02:00"
            dt_str = str(tags[tag]).strip().replace(':', '-', 2)
            offset_tag = config.OFFSET_TAGS.get(tag)
            offset = str(tags[offset_tag]).strip() if offset_tag in tags else ""
            try:
                dt = datetime.fromisoformat(dt_str + offset)
            except ValueError:
                try:
                    dt = datetime.fromisoformat(dt_str)
                except ValueError:
                    continue
            return self._ensure_aware(dt)
        return None

    def _parse_flexible_date(self, dt_str: str) -> Optional[datetime]:
        """
        Handles various date formats (ISO, UTC prefixes/suffixes, Exiftool quirks).
        Naive values are taken as UTC, which is what QuickTime containers store.
        """
        if not dt_str:
            return None

        clean = dt_str.replace("UTC", "").strip()

        # 1. Try ISO format (e.g. 2020-01-01T12:00:00+02:00)
        try:
            return self._ensure_aware(datetime.fromisoformat(clean))
        except ValueError:
            pass

        # 2. Try EXIF style "YYYY:MM:DD HH:MM:SS[+HH:MM]"
        try:
            return self._ensure_aware(datetime.fromisoformat(clean.replace(":", "-", 2)))
        except ValueError:
            pass

        return None

    @staticmethod
    def _ensure_aware(dt: datetime) -> datetime:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt
