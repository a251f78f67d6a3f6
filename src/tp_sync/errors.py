"""Exception types raised by the synchronization pipeline."""


class SyncError(Exception):
    """Base class for all tp-sync errors."""


class MissingMetadataError(SyncError):
    """Metadata for a document referenced by a view could not be loaded."""

    def __init__(self, path: str):
        super().__init__(f"Failed to load metadata for {path}")
        self.path = path


class InvalidParameterError(SyncError):
    """A view parameter uses a key outside the reserved set."""


class UnsafePathError(SyncError):
    """A download target resolves outside of its output root."""
