"""zipapi - upload files, receive them back as a streamed zip archive."""

import argparse
import sys
import tomllib
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, Response
from pydantic import ValidationError

from zipapi.api.archive import router as archive_router
from zipapi.core.exceptions import ClientInputError, ZipAPIError
from zipapi.core.lifespan import create_lifespan
from zipapi.core.logger import LoggerConfig, LogIcon, LogLevel, logger, setup_logging
from zipapi.core.router import error_response
from zipapi.core.settings import Settings
from zipapi.events.store import StoreEvent
from zipapi.middlewares.base import MiddlewareHandler
from zipapi.middlewares.request_context import RequestContextMiddleware
from zipapi.store.base import Store
from zipapi.store.memory import MemoryStore


async def zipapi_error_handler(request: Request, exc: ZipAPIError) -> Response:
    """Map pipeline errors to 400 with a reason, or to an opaque 500."""
    if isinstance(exc, ClientInputError):
        logger.warning("Rejected upload", icon=LogIcon.FORBIDDEN, code=exc.code, detail=exc.detail)
        return error_response(exc.status_code, exc.code, exc.detail)

    logger.error(
        f"Internal error: {request.url.path} '{request.method}'",
        icon=LogIcon.ERROR,
        code=exc.code,
        detail=exc.detail,
        exc_info=exc,
    )
    return error_response(exc.status_code, ZipAPIError.code)


def create_app(settings: Settings, store: Store | None = None) -> FastAPI:
    """Build the application around an explicit settings object and store."""
    lifespan = create_lifespan()
    lifespan.register(StoreEvent(store or MemoryStore()))

    app = FastAPI(
        title=settings.API_NAME,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    # Middlewares
    middlewares = MiddlewareHandler(app)
    middlewares.register(RequestContextMiddleware())

    app.add_exception_handler(ZipAPIError, zipapi_error_handler)

    # Routers
    app.include_router(archive_router)
    return app


def uvicorn_options(settings: Settings) -> dict[str, Any]:
    """Translate settings into uvicorn server options."""
    options: dict[str, Any] = {
        "host": settings.API_HOST,
        "port": settings.API_PORT,
        "timeout_keep_alive": settings.KEEP_ALIVE_SECONDS,
        "log_config": None,
    }
    if settings.tls_enabled:
        options["ssl_certfile"] = str(settings.TLS_CERT_FILE)
        options["ssl_keyfile"] = str(settings.TLS_KEY_FILE)
        if settings.TLS_CIPHERS:
            options["ssl_ciphers"] = settings.TLS_CIPHERS
    return options


def load_settings(config_path: Path | None) -> Settings:
    return Settings.from_file(config_path) if config_path else Settings()


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="zipapi", description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="path to a TOML configuration file")
    args = parser.parse_args(argv)

    try:
        st = load_settings(args.config)
    except (OSError, tomllib.TOMLDecodeError, ValidationError) as ex:
        logger.error("Reading config failed", icon=LogIcon.ERROR, config=str(args.config), error=str(ex))
        sys.exit(1)

    setup_logging(
        LoggerConfig(
            debug=st.DEBUG,
            app_name=st.API_NAME,
            log_level=LogLevel(st.LOG_LEVEL),
            output=st.LOG_OUTPUT,
        )
    )

    logger.info("🚀 STARTING %s | URL=%s | ENV=%s", st.API_NAME, st.api_url, st.ENVIRONMENT)
    uvicorn.run(create_app(st), **uvicorn_options(st))


if __name__ == "__main__":
    main()
