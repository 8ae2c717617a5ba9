"""Test fixtures for zipapi unit tests."""

import io
import zipfile
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass, field

import pytest
from fastapi.testclient import TestClient

from zipapi.core.settings import Settings
from zipapi.main import create_app
from zipapi.store.memory import MemoryStore

BOUNDARY = "zipapi-test-boundary"


# -----------------------------------------------------------------------------
# Multipart request builder
# -----------------------------------------------------------------------------


@dataclass
class Part:
    """One multipart part; a part without filename is a plain form field."""

    name: str
    contents: bytes
    filename: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


def file_part(name: str, contents: bytes) -> Part:
    return Part(name=name, contents=contents, filename=name)


def build_multipart(*parts: Part, boundary: str = BOUNDARY) -> bytes:
    """Encode parts the way a browser form submission would."""
    body = io.BytesIO()
    for part in parts:
        disposition = f'form-data; name="{part.name}"'
        if part.filename is not None:
            disposition += f'; filename="{part.filename}"'
        body.write(f"--{boundary}\r\n".encode())
        body.write(f"Content-Disposition: {disposition}\r\n".encode())
        if part.filename is not None:
            body.write(b"Content-Type: application/octet-stream\r\n")
        for key, value in part.headers.items():
            body.write(f"{key}: {value}\r\n".encode())
        body.write(b"\r\n")
        body.write(part.contents)
        body.write(b"\r\n")
    body.write(f"--{boundary}--\r\n".encode())
    return body.getvalue()


def multipart_headers(boundary: str = BOUNDARY) -> dict[str, str]:
    return {"content-type": f"multipart/form-data; boundary={boundary}"}


def read_archive(data: bytes) -> dict[str, bytes]:
    """Extract every entry of a zip archive by name (last entry wins)."""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {info.filename: archive.read(info) for info in archive.infolist()}


async def chunked(data: bytes, size: int = 7) -> AsyncIterator[bytes]:
    """Yield ``data`` in small chunks like a slow client would."""
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


# -----------------------------------------------------------------------------
# Application fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_client(memory_store: MemoryStore) -> Iterator[Callable[..., TestClient]]:
    """Factory fixture creating started test clients with overridable limits."""
    clients: list[TestClient] = []

    def _make(**overrides) -> TestClient:
        app = create_app(Settings(_env_file=None, **overrides), store=memory_store)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
