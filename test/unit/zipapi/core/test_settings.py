"""Tests for settings loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from zipapi.core.settings import MiB, Settings, get_version, read_pyproject
from zipapi.models.core import UploadLimits


class TestSettingsDefaults:
    """Tests for default values."""

    def test_upload_limit_defaults(self) -> None:
        """Verify request, file and buffer limits default to 4/1/1 MiB."""
        st = Settings(_env_file=None)

        assert st.MAX_REQUEST_SIZE == 4 * MiB
        assert st.MAX_FILE_SIZE == 1 * MiB
        assert st.MAX_MULTIPART_MEMBUF == 1 * MiB

    def test_tls_disabled_by_default(self) -> None:
        """Verify the default DEV environment runs without TLS."""
        st = Settings(_env_file=None)

        assert not st.tls_enabled
        assert st.api_url.startswith("http://")

    def test_limits_from_settings(self) -> None:
        """Verify UploadLimits mirrors the configured sizes."""
        st = Settings(_env_file=None, MAX_REQUEST_SIZE=2048, MAX_FILE_SIZE=1024, MAX_MULTIPART_MEMBUF=512)

        assert UploadLimits.from_settings(st) == UploadLimits(2048, 1024, 512)


class TestSettingsParsing:
    """Tests for value parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1024", 1024), ("512KiB", 512 * 1024), ("4MiB", 4 * MiB), ("1MB", 1_000_000)],
    )
    def test_human_readable_sizes(self, raw: str, expected: int) -> None:
        """Verify sizes accept plain integers and unit suffixes."""
        assert Settings(_env_file=None, MAX_FILE_SIZE=raw).MAX_FILE_SIZE == expected

    def test_sizes_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Verify limits are read from environment variables."""
        monkeypatch.setenv("MAX_REQUEST_SIZE", "8MiB")

        assert Settings(_env_file=None).MAX_REQUEST_SIZE == 8 * MiB

    @pytest.mark.parametrize("field", ["MAX_REQUEST_SIZE", "MAX_FILE_SIZE", "MAX_MULTIPART_MEMBUF"])
    def test_zero_size_rejected(self, field: str) -> None:
        """Verify limits must be positive."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})


class TestSettingsValidation:
    """Tests for cross-field validation."""

    def test_prod_requires_tls(self) -> None:
        """Verify PROD without certificate and key is rejected."""
        with pytest.raises(ValidationError, match="TLS must be enabled"):
            Settings(_env_file=None, ENVIRONMENT="PROD")

    def test_prod_with_tls(self, tmp_path: Path) -> None:
        """Verify PROD with certificate and key is accepted."""
        st = Settings(
            _env_file=None,
            ENVIRONMENT="PROD",
            TLS_CERT_FILE=tmp_path / "cert.pem",
            TLS_KEY_FILE=tmp_path / "key.pem",
        )

        assert st.tls_enabled
        assert st.api_url.startswith("https://")

    def test_certificate_without_key_rejected(self, tmp_path: Path) -> None:
        """Verify half-configured TLS is rejected."""
        with pytest.raises(ValidationError, match="must be set together"):
            Settings(_env_file=None, TLS_CERT_FILE=tmp_path / "cert.pem")

    @pytest.mark.parametrize("output", ["stdout", "stderr", "file:/tmp/zipapi.log"])
    def test_valid_log_outputs(self, output: str) -> None:
        """Verify accepted log output forms."""
        assert Settings(_env_file=None, LOG_OUTPUT=output).LOG_OUTPUT == output

    @pytest.mark.parametrize("output", ["", "file:", "syslog"])
    def test_invalid_log_outputs(self, output: str) -> None:
        """Verify unknown log outputs are rejected."""
        with pytest.raises(ValidationError, match="invalid LOG_OUTPUT"):
            Settings(_env_file=None, LOG_OUTPUT=output)


class TestSettingsFile:
    """Tests for TOML configuration files."""

    def test_from_file(self, tmp_path: Path) -> None:
        """Verify values are read from a TOML file."""
        config = tmp_path / "config.toml"
        config.write_text('API_PORT = 9000\nMAX_FILE_SIZE = "2KiB"\nDEBUG = false\n')

        st = Settings.from_file(config)

        assert st.API_PORT == 9000
        assert st.MAX_FILE_SIZE == 2048
        assert st.DEBUG is False

    def test_file_wins_over_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Verify file values take precedence over environment variables."""
        monkeypatch.setenv("API_PORT", "7000")
        config = tmp_path / "config.toml"
        config.write_text("API_PORT = 9000\n")

        assert Settings.from_file(config).API_PORT == 9000

    def test_unknown_keys_rejected(self, tmp_path: Path) -> None:
        """Verify typos in the config file are reported."""
        config = tmp_path / "config.toml"
        config.write_text("MAX_FILE_SIZ = 10\n")

        with pytest.raises(ValidationError):
            Settings.from_file(config)


class TestMetadata:
    """Tests for project metadata helpers."""

    def test_read_missing_pyproject(self, tmp_path: Path) -> None:
        """Verify a missing pyproject.toml yields an empty dict."""
        assert read_pyproject(tmp_path / "pyproject.toml") == {}

    def test_unknown_distribution_version(self) -> None:
        """Verify version falls back when the distribution is not installed."""
        assert get_version("zipapi-not-installed") == "0.0.0"
