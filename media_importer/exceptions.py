"""
Custom exception hierarchy for the media importer.

Missing capture metadata is deliberately absent from this module: extraction
returns None and the caller falls back to the epoch timestamp.
"""


class MediaImporterError(Exception):
    """Base exception for all media importer errors."""
    pass


class InvalidConfiguration(MediaImporterError):
    """Raised when the config file or the extension list is malformed."""
    pass


class IndexingIOError(MediaImporterError):
    """Raised when an existing file cannot be indexed (recovered by the index builder)."""
    pass


class ResolutionIOError(MediaImporterError):
    """Raised when a candidate's size cannot be read during duplicate resolution."""
    pass


class CopyIOError(MediaImporterError):
    """Raised when a destination directory cannot be created or a copy fails."""
    pass
