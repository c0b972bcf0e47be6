from textwrap import dedent
import logging
from typing import Any, Optional

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute

from files_proxy.errors import (
    FileProxyError,
    handle_broad_exceptions,
    handle_file_proxy_errors,
    handle_pydantic_validation_errors,
)
from files_proxy.routers.files import router as files_router
from files_proxy.routers.health import router as health_router
from files_proxy.s3.client import create_s3_client
from files_proxy.settings import Settings
from files_proxy.storage.local import LocalStorage

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, s3_client: Optional[Any] = None) -> FastAPI:
    """Create a FastAPI application.

    :param settings: Application settings; read from the environment when omitted.
    :param s3_client: S3 client shared by all requests; built from ``settings`` when omitted.
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Files Proxy",
        summary="Store files locally, mirror them to S3, serve them back",
        version="v1",
        description=dedent(
            """\
        Upload a file with `POST /upload` and fetch it back with `GET /file/{identifier}`.

        | Tier | Role |
        | --- | --- |
        | Local directory | Checked first on every fetch |
        | S3 bucket | Mirror of every upload, fallback on a local miss |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )

    app.state.settings = settings
    app.state.local_storage = LocalStorage(settings.storage_dir)
    app.state.s3_client = s3_client if s3_client is not None else create_s3_client(settings)

    logger.info(f"Local storage at {app.state.local_storage.root.resolve()}")
    app.state.local_storage.ensure_root()

    app.include_router(files_router, tags=["files"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=FileProxyError,
        handler=handle_file_proxy_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("files_proxy").setLevel(log_level)


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
