"""Error types raised while reading index files."""


class IdxError(RuntimeError):
    """Base class for all index reading errors."""


class FileOpenError(IdxError):
    """The index (or metadata) file is missing, unreadable or not a regular file."""


class TruncatedRecordError(IdxError):
    """The stream ended in the middle of a record."""


class KeyTooLongError(IdxError):
    """A key grew past the maximum length before its terminator was seen."""


class IfoError(IdxError):
    """The dictionary metadata file is malformed."""
