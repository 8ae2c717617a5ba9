"""Core models shared by the ingestor, the archive streamer and stores."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zipapi.core.settings import Settings


class Stage(StrEnum):
    """Per-request pipeline stage."""

    VALIDATING = "validating"
    DECODING = "decoding"
    ARCHIVING = "archiving"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """One file part decoded from a multipart/form-data request."""

    name: str
    contents: bytes = field(repr=False)
    upload_time: datetime
    client_agent: str = ""

    @property
    def size(self) -> int:
        return len(self.contents)


@dataclass(frozen=True, slots=True)
class UploadLimits:
    """Byte limits enforced while ingesting one request."""

    max_request_bytes: int
    max_file_bytes: int
    max_decode_buffer_bytes: int

    @classmethod
    def from_settings(cls, settings: "Settings") -> "UploadLimits":
        return cls(
            max_request_bytes=int(settings.MAX_REQUEST_SIZE),
            max_file_bytes=int(settings.MAX_FILE_SIZE),
            max_decode_buffer_bytes=int(settings.MAX_MULTIPART_MEMBUF),
        )
