"""
Error kinds raised by the file browser core.

Every exception carries a stable ``kind`` string (what API clients switch
on) and the HTTP status the API layer answers with.  Messages only ever
mention root-relative paths.
"""

from enum import Enum


class ErrorKind(str, Enum):
    PATH_ESCAPE = "PathEscape"
    NOT_FOUND = "NotFound"
    DIRECTORY_NOT_FOUND = "DirectoryNotFound"
    NOT_A_DIRECTORY = "NotADirectory"
    IS_A_DIRECTORY = "IsADirectory"
    FILE_TOO_LARGE = "FileTooLarge"
    DISALLOWED_TYPE = "DisallowedType"
    IO_FAILURE = "IOFailure"
    ROOT_NOT_CONFIGURED = "RootNotConfigured"
    PARTIAL_BATCH_FAILURE = "PartialBatchFailure"


class FileBrowserError(Exception):
    """Base class for all core errors."""
    kind = ErrorKind.IO_FAILURE
    status_code = 500
    default_message = "Unexpected filesystem error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PathEscape(FileBrowserError):
    kind = ErrorKind.PATH_ESCAPE
    status_code = 400
    default_message = "Invalid path"


class NotFound(FileBrowserError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "File not found"


class DirectoryNotFound(NotFound):
    kind = ErrorKind.DIRECTORY_NOT_FOUND
    default_message = "Directory not found"


class NotADirectory(FileBrowserError):
    kind = ErrorKind.NOT_A_DIRECTORY
    status_code = 400
    default_message = "Path is not a directory"


class IsADirectory(FileBrowserError):
    kind = ErrorKind.IS_A_DIRECTORY
    status_code = 400
    default_message = "Cannot download directory"


class FileTooLarge(FileBrowserError):
    kind = ErrorKind.FILE_TOO_LARGE
    status_code = 413
    default_message = "File exceeds the maximum upload size"


class DisallowedType(FileBrowserError):
    kind = ErrorKind.DISALLOWED_TYPE
    status_code = 415
    default_message = "File type is not allowed"


class IOFailure(FileBrowserError):
    pass


class RootNotConfigured(FileBrowserError):
    kind = ErrorKind.ROOT_NOT_CONFIGURED
    default_message = "Storage root is not available"
