"""POST /archive: re-encode uploaded files as a streamed zip archive."""

import asyncio
from collections.abc import AsyncIterator

from fastapi import Request, Response
from fastapi.responses import StreamingResponse

from zipapi.core.exceptions import TransferAbortedError, ZipAPIError
from zipapi.core.logger import LogIcon, logger
from zipapi.core.router import Router
from zipapi.models.core import Stage, UploadLimits
from zipapi.services.archiver import ArchiveStreamer
from zipapi.services.ingestor import UploadIngestor
from zipapi.store.base import Store

ARCHIVE_MEDIA_TYPE = "application/zip"
ARCHIVE_FILENAME = "archive.zip"

router = Router()


async def relay(first: bytes, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Emit the primed first chunk, then the rest; failures past this point abort the transfer."""
    try:
        yield first
        async for chunk in chunks:
            yield chunk
    except ZipAPIError as ex:
        logger.error("Post-flush failure, archive truncated", icon=LogIcon.ERROR, stage=Stage.FAILED, error=str(ex))
        raise TransferAbortedError(str(ex)) from ex
    except asyncio.CancelledError:
        logger.warning("Client disconnected mid-archive", icon=LogIcon.FORBIDDEN, stage=Stage.FAILED)
        raise
    finally:
        await chunks.aclose()

    logger.info("Archive delivered", icon=LogIcon.SUCCESS, stage=Stage.COMPLETED)


@router.post("/archive", response_model=None)
async def post_archive(request: Request) -> Response:
    """Decode the uploaded files, persist them and stream them back as a zip archive."""
    settings = request.app.state.settings
    store: Store = request.app.state.resources.store

    try:
        logger.info("Validating upload", icon=LogIcon.UPLOAD, stage=Stage.VALIDATING)
        content_length = request.headers.get("content-length")
        ingestor = UploadIngestor(UploadLimits.from_settings(settings))
        files = await ingestor.ingest(
            request.headers.get("content-type"),
            request.stream(),
            client_agent=request.headers.get("user-agent", ""),
            content_length=int(content_length) if content_length and content_length.isdigit() else None,
        )

        logger.info("Archiving upload", icon=LogIcon.STREAMING, stage=Stage.ARCHIVING, files=len(files))
        chunks = ArchiveStreamer(store).stream(files)
        try:
            first = await anext(chunks)
        except BaseException:
            await chunks.aclose()
            raise
    except ZipAPIError:
        raise
    except Exception as ex:
        raise ZipAPIError(f"unexpected failure: {ex!r}") from ex

    return StreamingResponse(
        relay(first, chunks),
        media_type=ARCHIVE_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_FILENAME}"'},
    )
