import hashlib
from datetime import datetime

from .. import config


def fingerprint(filename: str, captured: datetime) -> str:
    """
    Computes the index key for a media file from its file name and capture time.

    The key ignores the directory and the file size. The time enters as its
    distance from the epoch, so two offsets describing the same instant
    produce the same key, and dates at the edge of the datetime range
    (year 1 with a positive offset) do not overflow a UTC conversion.
    File names cannot contain NUL, so it separates the two fields
    unambiguously.
    """
    delta = captured - config.EPOCH
    h = hashlib.sha256()
    h.update(filename.encode('utf-8', errors='surrogateescape'))
    h.update(b'\0')
    h.update(f"{delta.days}:{delta.seconds}:{delta.microseconds}".encode('ascii'))
    return h.hexdigest()
