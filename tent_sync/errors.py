"""Error definitions for the Transifex download pipeline."""


class TentSyncError(Exception):
    """Base exception for all custom errors."""


class RepositoryError(TentSyncError):
    """Raised when the content checkout cannot be updated or read."""


class RemoteError(TentSyncError):
    """Raised when a Transifex request fails or returns an unusable body."""


class CacheReadError(TentSyncError):
    """Raised when a cache entry cannot be read or is not a translation mapping."""


class CacheWriteError(TentSyncError):
    """Raised when a new cache entry cannot be created."""


class FormatError(TentSyncError):
    """Raised when a translated payload is not a list of string records."""


class ParseError(TentSyncError):
    """Raised when a resource cannot be folded into the content tree."""


class PersistError(TentSyncError):
    """Raised when a tree node cannot be written to disk."""
