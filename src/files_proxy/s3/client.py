"""Construction of the shared S3 client."""
import logging
from typing import TYPE_CHECKING, Any, Dict

import boto3

from files_proxy.settings import Settings

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)


def create_s3_client(settings: Settings) -> "S3Client":
    """
    Create the S3 client shared by every request.

    boto3 clients are thread-safe and pool their own connections, so one
    instance per process is enough. Credentials that are not configured fall
    through to the default boto3 credential chain.
    """
    client_kwargs: Dict[str, Any] = {
        "region_name": settings.aws_region,
    }
    if settings.aws_access_key_id:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    if settings.aws_endpoint_url:
        client_kwargs["endpoint_url"] = settings.aws_endpoint_url

    logger.info("Creating S3 client")
    logger.info(f"  Region: {settings.aws_region}")
    logger.info(f"  Endpoint: {settings.aws_endpoint_url or 'default'}")
    logger.info(f"  Bucket: {settings.s3_bucket_name}")

    return boto3.client("s3", **client_kwargs)
