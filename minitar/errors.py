from __future__ import annotations

from typing import Optional


class MinitarError(Exception):
    """Base class for minitar-specific errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ArchiveNotFound(MinitarError):
    pass


class SourceOpenFailed(MinitarError):
    pass


# Header encoding
class HeaderEncodeFailed(MinitarError):
    pass


class MetadataUnavailable(HeaderEncodeFailed):
    pass


class IdentityUnresolved(HeaderEncodeFailed):
    pass


class NameTooLong(HeaderEncodeFailed):
    pass


class FieldOverflow(HeaderEncodeFailed):
    pass


# Stream I/O
class ShortRead(MinitarError):
    pass


class ShortWrite(MinitarError):
    pass


class SeekFailed(MinitarError):
    pass


# Archive consistency
class NotInArchive(MinitarError):
    pass


class MalformedArchive(MinitarError):
    pass
