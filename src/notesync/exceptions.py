"""Error taxonomy for vault sync operations."""


class NotesyncError(RuntimeError):
    """Base class for errors surfaced to the operator."""


class ConfigurationError(NotesyncError):
    """Raised when no connection string is configured."""


class DatabaseConnectionError(NotesyncError):
    """Raised when connecting to the destination database fails."""


class NoActiveFileError(NotesyncError):
    """Raised when "upload current file" has no current file to upload."""


class SyncError(NotesyncError):
    """Raised when a sync pass fails outside the per-record inserts.

    Covers the watermark query and reading the vault; the underlying error
    is chained as ``__cause__``.
    """


class UploadError(SyncError):
    """Raised when inserting a record fails.

    The driver error is chained as ``__cause__``; ``outcome`` holds the
    partial result (records inserted before the failing one).
    """

    def __init__(self, message: str, *, path: str, outcome=None):
        super().__init__(message)
        self.path = path
        self.outcome = outcome
