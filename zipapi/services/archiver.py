"""Streaming zip encoding of uploaded files."""

import asyncio
import zipfile
from collections.abc import AsyncIterator, Sequence

from zipapi.core.exceptions import ArchiveWriteError, StoreError
from zipapi.core.logger import LogIcon, logger
from zipapi.models.core import UploadedFile
from zipapi.store.base import Store

CHUNK_SIZE = 64 * 1024
COMPRESS_LEVEL = 9


class ResponseSink:
    """
    Write-only byte sink drained into response chunks.

    It has no ``tell``/``seek``, so ``zipfile`` treats it as unseekable and
    writes a data descriptor after each entry instead of patching headers.
    """

    def __init__(self) -> None:
        self._chunks: list[bytes] = []
        self.written = 0

    def write(self, data: bytes) -> int:
        self._chunks.append(bytes(data))
        self.written += len(data)
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


class ArchiveStreamer:
    """
    Encodes files into a deflated zip archive emitted chunk by chunk.

    Entries are written in input order; the whole batch is then handed to the
    store in one ``save`` call and only after that succeeds is the central
    directory written. A failed save therefore leaves the archive without its
    directory.
    """

    def __init__(self, store: Store, chunk_size: int = CHUNK_SIZE) -> None:
        self.store = store
        self.chunk_size = chunk_size

    async def stream(self, files: Sequence[UploadedFile]) -> AsyncIterator[bytes]:
        sink = ResponseSink()
        archive = zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL)

        for file in files:
            async for chunk in self._write_entry(archive, sink, file):
                yield chunk

        await self._persist(files)

        try:
            await asyncio.to_thread(archive.close)
        except (OSError, ValueError) as ex:
            raise ArchiveWriteError("<central directory>") from ex
        yield sink.drain()

        logger.info("Archive streamed", icon=LogIcon.STREAMING, files=len(files), archive_bytes=sink.written)

    async def _write_entry(self, archive: zipfile.ZipFile, sink: ResponseSink, file: UploadedFile) -> AsyncIterator[bytes]:
        view = memoryview(file.contents)
        try:
            with archive.open(file.name, mode="w") as entry:
                for offset in range(0, len(view), self.chunk_size):
                    await asyncio.to_thread(entry.write, view[offset : offset + self.chunk_size])
                    if data := sink.drain():
                        yield data
        except (OSError, ValueError, zipfile.LargeZipFile) as ex:
            raise ArchiveWriteError(file.name) from ex

        if data := sink.drain():
            yield data

    async def _persist(self, files: Sequence[UploadedFile]) -> None:
        try:
            await self.store.save(files)
        except StoreError:
            raise
        except Exception as ex:
            raise StoreError(f"saving files to store: {ex}") from ex
