"""Error taxonomy for the upload-to-archive pipeline."""

from fastapi import status


class ZipAPIError(Exception):
    """
    Base exception for all pipeline errors.

    Subclasses set ``status_code`` and a machine-readable ``code``; ``detail``
    is the short human-readable reason.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.code)
        self.detail = detail or self.code


class ClientInputError(ZipAPIError):
    """
    Raised for requests rejected before any output is produced.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"


class InvalidContentTypeError(ClientInputError):
    """
    Raised when the request does not declare a multipart/form-data body.
    """

    code = "invalid_content_type"

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(f"expected multipart/form-data, got '{content_type or ''}'")


class RequestTooLargeError(ClientInputError):
    """
    Raised as soon as the request body crosses the request size limit.
    """

    code = "request_too_large"

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"request body exceeds max request size ({limit})")


class FileTooLargeError(ClientInputError):
    """
    Raised when a single uploaded file exceeds the file size limit.
    """

    code = "file_too_large"

    def __init__(self, name: str, limit: int) -> None:
        self.name = name
        self.limit = limit
        super().__init__(f"file '{name}' exceeds max file size ({limit})")


class InvalidFileNameError(ClientInputError):
    """
    Raised when a file part name cannot be stored as an archive entry name.
    """

    code = "invalid_file_name"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid file name {name!r}")


class NoFilesProvidedError(ClientInputError):
    """
    Raised when a multipart request carries no file parts.
    """

    code = "no_files"

    def __init__(self) -> None:
        super().__init__("no files provided")


class MultipartDecodeError(ZipAPIError):
    """
    Raised when a body declared as multipart/form-data cannot be decoded.
    """


class ArchiveWriteError(ZipAPIError):
    """
    Raised when an archive entry cannot be created or written.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"writing archive entry '{name}'")


class StoreError(ZipAPIError):
    """
    Raised by Store implementations when initialization or saving fails.
    """


class TransferAbortedError(Exception):
    """
    Raised to abort a response whose body already started streaming.

    Not a ``ZipAPIError``: no exception handler maps it to a response, the
    server drops the connection and the client sees a truncated transfer.
    """
