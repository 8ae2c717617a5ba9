"""Upload ingestion: size-bounded decoding of multipart/form-data bodies."""

import asyncio
import io
import tempfile
from collections.abc import AsyncIterable, AsyncIterator
from datetime import UTC, datetime
from typing import IO

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from zipapi.core.exceptions import (
    FileTooLargeError,
    InvalidContentTypeError,
    InvalidFileNameError,
    MultipartDecodeError,
    NoFilesProvidedError,
    RequestTooLargeError,
)
from zipapi.core.logger import LogIcon, logger
from zipapi.models.core import Stage, UploadedFile, UploadLimits

MULTIPART_FORM_DATA = b"multipart/form-data"


def parse_boundary(content_type: str | None) -> bytes:
    """Return the multipart boundary, rejecting anything but multipart/form-data."""
    if not content_type:
        raise InvalidContentTypeError(content_type)
    media_type, options = parse_options_header(content_type)
    boundary = options.get(b"boundary", b"")
    if media_type.lower() != MULTIPART_FORM_DATA or not boundary:
        raise InvalidContentTypeError(content_type)
    return boundary


async def read_bounded(body: AsyncIterable[bytes], max_bytes: int) -> AsyncIterator[bytes]:
    """Relay body chunks, failing on the chunk that crosses ``max_bytes``."""
    received = 0
    async for chunk in body:
        received += len(chunk)
        if received > max_bytes:
            raise RequestTooLargeError(max_bytes)
        yield chunk


def _safe_decode(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


class PartBuffer:
    """Holds one file part in memory, or on disk once spilled."""

    __slots__ = ("name", "size", "spilled", "_file")

    def __init__(self, name: str) -> None:
        self.name = name
        self.size = 0
        self.spilled = False
        self._file: IO[bytes] = io.BytesIO()

    def write(self, chunk: bytes) -> None:
        self._file.write(chunk)
        self.size += len(chunk)

    def spill(self) -> None:
        """Move the buffered bytes to an anonymous temporary file."""
        if self.spilled:
            return
        disk = tempfile.TemporaryFile()
        disk.write(self._file.getvalue())  # type: ignore[attr-defined]
        self._file.close()
        self._file = disk
        self.spilled = True

    def read(self) -> bytes:
        self._file.seek(0)
        return self._file.read()

    def close(self) -> None:
        self._file.close()


class MultipartDecoder:
    """
    Streaming multipart/form-data decoder collecting file parts.

    Feeds python-multipart's ``MultipartParser`` and keeps at most
    ``limits.max_decode_buffer_bytes`` of part data in memory across all parts;
    past that budget the current part spills to a temporary file. Parts
    without a ``filename`` are plain form fields and are skipped.
    """

    def __init__(self, boundary: bytes, limits: UploadLimits) -> None:
        self.limits = limits
        self.parts: list[PartBuffer] = []
        self.finished = False

        self._in_memory = 0
        self._current: PartBuffer | None = None
        self._headers: dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""

        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_end": self._on_end,
            },
        )

    def write(self, chunk: bytes) -> None:
        try:
            self._parser.write(chunk)
        except MultipartParseError as ex:
            raise MultipartDecodeError(f"parsing multipart/form-data: {ex}") from ex

    def finalize(self) -> None:
        self._parser.finalize()
        if not self.finished:
            raise MultipartDecodeError("multipart/form-data body ended before the closing boundary")

    def close(self) -> None:
        for part in self.parts:
            part.close()
        if self._current is not None and self._current not in self.parts:
            self._current.close()

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._current = None

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        disposition = self._headers.get(b"content-disposition")
        if disposition is None:
            raise MultipartDecodeError("missing Content-Disposition header")
        _, options = parse_options_header(disposition)
        if b"name" not in options:
            raise MultipartDecodeError("missing name in Content-Disposition header")
        # an unselected file input arrives as filename=""
        if options.get(b"filename"):
            name = _safe_decode(options[b"name"])
            # zipfile truncates entry names at NUL; a trailing slash makes a directory entry
            if "\x00" in name or name.endswith("/"):
                raise InvalidFileNameError(name)
            self._current = PartBuffer(name)

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        part = self._current
        if part is None:
            return
        chunk = data[start:end]
        if part.size + len(chunk) > self.limits.max_file_bytes:
            raise FileTooLargeError(part.name, self.limits.max_file_bytes)

        if not part.spilled and self._in_memory + len(chunk) > self.limits.max_decode_buffer_bytes:
            self._in_memory -= part.size
            part.spill()
        elif not part.spilled:
            self._in_memory += len(chunk)
        part.write(chunk)

    def _on_part_end(self) -> None:
        if self._current is not None:
            self.parts.append(self._current)
            self._current = None

    def _on_end(self) -> None:
        self.finished = True


class UploadIngestor:
    """Turns one multipart/form-data request body into validated ``UploadedFile`` values."""

    def __init__(self, limits: UploadLimits) -> None:
        self.limits = limits

    async def ingest(
        self,
        content_type: str | None,
        body: AsyncIterable[bytes],
        *,
        client_agent: str = "",
        content_length: int | None = None,
        received_at: datetime | None = None,
    ) -> list[UploadedFile]:
        """
        Validate and decode a request body.

        Raises a ``ClientInputError`` subclass for rejected input and
        ``MultipartDecodeError`` for malformed bodies; nothing is returned
        unless every file part is within limits.
        """
        upload_time = received_at or datetime.now(UTC)
        boundary = parse_boundary(content_type)

        if content_length is not None and content_length > self.limits.max_request_bytes:
            raise RequestTooLargeError(self.limits.max_request_bytes)

        decoder = MultipartDecoder(boundary, self.limits)
        try:
            # spilled parts write to disk
            async for chunk in read_bounded(body, self.limits.max_request_bytes):
                await asyncio.to_thread(decoder.write, chunk)
            await asyncio.to_thread(decoder.finalize)

            if not decoder.parts:
                raise NoFilesProvidedError()

            files = [
                UploadedFile(
                    name=part.name,
                    contents=await asyncio.to_thread(part.read),
                    upload_time=upload_time,
                    client_agent=client_agent,
                )
                for part in decoder.parts
            ]
        finally:
            decoder.close()

        logger.info(
            "Upload decoded",
            icon=LogIcon.UPLOAD,
            stage=Stage.DECODING,
            files=len(files),
            total_bytes=sum(file.size for file in files),
        )
        return files
