import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from files_proxy.s3.read_objects import bucket_is_reachable
from files_proxy.schemas import HealthResponse
from files_proxy.settings import Settings
from files_proxy.storage.local import LocalStorage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for monitoring API status and storage readiness.

    Returns the status of the local storage directory and the bucket.
    """
    settings: Settings = request.app.state.settings
    local_storage: LocalStorage = request.app.state.local_storage
    s3_client = request.app.state.s3_client

    components = {
        "api": "ready",
        "local_storage": "ready",
        "remote_storage": "ready",
    }

    try:
        await run_in_threadpool(local_storage.ensure_root)
    except OSError as e:
        logger.warning(f"Local storage not ready: {e}")
        components["local_storage"] = f"error: {e.strerror or e}"

    try:
        await run_in_threadpool(bucket_is_reachable, s3_client, settings.s3_bucket_name)
    except (BotoCoreError, ClientError) as e:
        logger.warning(f"Bucket '{settings.s3_bucket_name}' not reachable: {e}")
        components["remote_storage"] = "error: bucket not reachable"

    ready = all(state == "ready" for state in components.values())
    return HealthResponse(status="ok" if ready else "degraded", components=components, ready=ready)
