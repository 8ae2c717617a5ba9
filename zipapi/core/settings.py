"""Unified settings for zipapi."""

import importlib.metadata
import tomllib
from pathlib import Path
from typing import Annotated, ClassVar, Literal, Self

from pydantic import ByteSize, Field, PositiveInt, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MiB = 1024 * 1024

PositiveByteSize = Annotated[ByteSize, Field(gt=0)]


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict, empty when the file is not shipped."""
    if not pyproject_path.is_file():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def read_config_file(config_path: Path) -> dict:
    """Read a TOML configuration file keyed by setting name."""
    with config_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(distribution: str = "zipapi") -> str:
    """Get the installed package version."""
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


class Settings(BaseSettings):
    """Unified settings for the zipapi service."""

    DEBUG: bool = True
    ENVIRONMENT: Literal["DEV", "PROD"] = "DEV"

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    API_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "zipapi")
    API_DESCRIPTION: ClassVar[str] = PROJECT.get("project", {}).get("description", "Zip archive API")
    API_VERSION: ClassVar[str] = get_version()

    # Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    KEEP_ALIVE_SECONDS: PositiveInt = 180

    # TLS
    TLS_CERT_FILE: Path | None = None
    TLS_KEY_FILE: Path | None = None
    TLS_CIPHERS: str | None = None

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_OUTPUT: str = "stdout"

    # Upload limits
    MAX_REQUEST_SIZE: PositiveByteSize = ByteSize(4 * MiB)
    MAX_FILE_SIZE: PositiveByteSize = ByteSize(1 * MiB)
    MAX_MULTIPART_MEMBUF: PositiveByteSize = ByteSize(1 * MiB)

    @property
    def tls_enabled(self) -> bool:
        return self.TLS_CERT_FILE is not None and self.TLS_KEY_FILE is not None

    @property
    def api_url(self) -> str:
        scheme = "https" if self.tls_enabled else "http"
        return f"{scheme}://{self.API_HOST}:{self.API_PORT}"

    @model_validator(mode="after")
    def _check_transport(self) -> Self:
        if (self.TLS_CERT_FILE is None) != (self.TLS_KEY_FILE is None):
            raise ValueError("TLS_CERT_FILE and TLS_KEY_FILE must be set together")
        if self.ENVIRONMENT == "PROD" and not self.tls_enabled:
            raise ValueError("TLS must be enabled in PROD environment")
        if self.LOG_OUTPUT not in ("stdout", "stderr") and not (
            self.LOG_OUTPUT.startswith("file:") and len(self.LOG_OUTPUT) > len("file:")
        ):
            raise ValueError(f"invalid LOG_OUTPUT: '{self.LOG_OUTPUT}'")
        return self

    @classmethod
    def from_file(cls, config_path: Path) -> Self:
        """Load settings from a TOML file; file values win over the environment."""
        return cls(**read_config_file(config_path))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")
