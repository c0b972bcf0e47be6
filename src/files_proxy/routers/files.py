import logging
import mimetypes
from typing import BinaryIO, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import (
    APIRouter,
    Path,
    Request,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, StreamingResponse
from starlette.datastructures import UploadFile

from files_proxy.errors import (
    InvalidUploadError,
    ObjectNotFoundError,
    RemoteStorageError,
)
from files_proxy.s3.read_objects import fetch_s3_object
from files_proxy.s3.write_objects import is_key_taken_error, upload_s3_object
from files_proxy.schemas import ErrorResponse, UploadResponse
from files_proxy.settings import Settings
from files_proxy.storage.local import LocalStorage
from files_proxy.storage.locator import (
    identifier_timestamp,
    identifier_to_key,
    identifier_to_url,
    sanitize_filename,
)

logger = logging.getLogger(__name__)

router = APIRouter()

STREAM_CHUNK_SIZE = 64 * 1024
DEFAULT_MEDIA_TYPE = "application/octet-stream"
UPLOAD_FIELD_NAME = "file"

UPLOAD_REQUEST_BODY = {
    "required": True,
    "content": {
        "multipart/form-data": {
            "schema": {
                "type": "object",
                "properties": {
                    UPLOAD_FIELD_NAME: {
                        "type": "string",
                        "format": "binary",
                        "description": "The file to store",
                    }
                },
                "required": [UPLOAD_FIELD_NAME],
            }
        }
    },
}


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No file part in the request"},
        500: {"model": ErrorResponse, "description": "The bucket rejected the upload"},
    },
    openapi_extra={"requestBody": UPLOAD_REQUEST_BODY},
)
async def upload_file(request: Request) -> UploadResponse:
    """
    Store a file locally and mirror it to the bucket.

    The file is written to the storage directory first, then uploaded to the
    bucket as a private object under the same identifier. If the upload fails
    for any reason the local copy is removed again and the request fails, so
    a reported failure never leaves a file behind.

    The form is parsed by hand so that a `file` field without a file part is
    answered like a missing one.

    Returns:
        UploadResponse: The identifier and the URL the file is served under
    """
    settings: Settings = request.app.state.settings
    local_storage: LocalStorage = request.app.state.local_storage
    s3_client = request.app.state.s3_client

    form = await request.form()
    try:
        upload = form.get(UPLOAD_FIELD_NAME)
        if not isinstance(upload, UploadFile):
            raise InvalidUploadError("No file uploaded")
        filename = sanitize_filename(upload.filename)

        identifier = await run_in_threadpool(
            store_and_mirror,
            settings,
            local_storage,
            s3_client,
            filename,
            upload.file,
            upload.content_type,
        )
    finally:
        await form.close()

    logger.info(f"Uploaded {identifier}")
    return UploadResponse(identifier=identifier, hash=identifier, url=identifier_to_url(identifier))


def store_and_mirror(
    settings: Settings,
    local_storage: LocalStorage,
    s3_client,
    filename: str,
    source: BinaryIO,
    content_type: Optional[str],
) -> str:
    """
    Write ``source`` locally, then put it in the bucket without overwriting.

    An identifier can be free locally but taken in the bucket, e.g. after the
    storage directory was wiped. In that case the local copy is dropped and
    the next millisecond is tried. Any other failure removes the local copy
    and propagates; boto errors are wrapped in `RemoteStorageError`.
    """
    timestamp_ms = None
    while True:
        identifier, local_path = local_storage.save_new(filename, source, timestamp_ms)
        try:
            upload_s3_object(
                s3_client,
                settings.s3_bucket_name,
                identifier_to_key(identifier),
                local_path,
                content_type,
                overwrite=False,
            )
        except Exception as err:
            local_storage.remove(identifier)
            if isinstance(err, ClientError) and is_key_taken_error(err):
                logger.info(f"Key {identifier} already taken in the bucket, bumping timestamp")
                source.seek(0)
                timestamp_ms = identifier_timestamp(identifier) + 1
                continue
            logger.warning(f"Mirroring {identifier} failed, removed local copy")
            if isinstance(err, (BotoCoreError, ClientError)):
                raise RemoteStorageError(
                    f"Failed to upload '{identifier}' to bucket '{settings.s3_bucket_name}'", cause=err
                ) from err
            raise
        return identifier


@router.get(
    "/file/{identifier}",
    responses={
        200: {"content": {DEFAULT_MEDIA_TYPE: {}}, "description": "The raw file content"},
        400: {"model": ErrorResponse, "description": "The identifier is not a valid file name"},
        404: {"model": ErrorResponse, "description": "Neither tier has the file"},
        500: {"model": ErrorResponse, "description": "The bucket could not be read"},
    },
)
async def get_file(
    request: Request,
    identifier: str = Path(..., description="The identifier returned by `POST /upload`"),
):
    """
    Serve a file, from the storage directory if present, else from the bucket.

    Args:
        identifier: The identifier of the file to retrieve

    Returns:
        FileResponse on a local hit, StreamingResponse over the object body otherwise
    """
    settings: Settings = request.app.state.settings
    local_storage: LocalStorage = request.app.state.local_storage
    s3_client = request.app.state.s3_client

    local_path = local_storage.path_for(identifier)
    if await run_in_threadpool(local_path.is_file):
        logger.debug(f"Cache hit for {identifier}")
        return FileResponse(local_path)

    logger.info(f"Cache miss for {identifier}, fetching from bucket '{settings.s3_bucket_name}'")
    try:
        s3_object = await run_in_threadpool(
            fetch_s3_object, s3_client, settings.s3_bucket_name, identifier_to_key(identifier)
        )
    except (BotoCoreError, ClientError) as err:
        raise RemoteStorageError(
            f"Failed to fetch '{identifier}' from bucket '{settings.s3_bucket_name}'", cause=err
        ) from err

    body = s3_object.get("Body") if s3_object else None
    if body is None:
        raise ObjectNotFoundError(f"File '{identifier}' not found")

    headers = {}
    if s3_object.get("ContentLength") is not None:
        headers["Content-Length"] = str(s3_object["ContentLength"])

    return StreamingResponse(
        _iter_body(body),
        media_type=s3_object.get("ContentType") or mimetypes.guess_type(identifier)[0] or DEFAULT_MEDIA_TYPE,
        headers=headers,
    )


def _iter_body(body) -> Iterator[bytes]:
    try:
        yield from body.iter_chunks(STREAM_CHUNK_SIZE)
    finally:
        body.close()
