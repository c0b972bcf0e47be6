"""Functions for writing objects to an S3 bucket."""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from botocore.exceptions import ClientError

from files_proxy.utils.decorators import log_execution_time

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

# Returned by conditional puts when the key exists or another writer raced us to it.
KEY_TAKEN_ERROR_CODES = {"PreconditionFailed", "412", "ConditionalRequestConflict", "409"}


def is_key_taken_error(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in KEY_TAKEN_ERROR_CODES


@log_execution_time
def upload_s3_object(
    s3_client: "S3Client",
    bucket_name: str,
    object_key: str,
    file_path: Union[str, Path],
    content_type: Optional[str] = None,
    overwrite: bool = True,
) -> None:
    """
    Upload a local file to an S3 bucket as a private object.

    :param s3_client: The shared boto3 S3 client.
    :param bucket_name: The name of the S3 bucket.
    :param object_key: Key of the object in the S3 bucket.
    :param file_path: Local file whose content is uploaded.
    :param content_type: The MIME type of the file, e.g. "text/plain" for a text file.
    :param overwrite: When False the put is conditional (``If-None-Match: *``) and an
        existing key makes it fail with a ClientError that `is_key_taken_error` recognizes.
    """
    content_type = content_type or "application/octet-stream"
    put_kwargs: Dict[str, Any] = {}
    if not overwrite:
        put_kwargs["IfNoneMatch"] = "*"
    with open(file_path, "rb") as file_content:
        s3_client.put_object(
            Bucket=bucket_name,
            Key=object_key,
            Body=file_content,
            ContentType=content_type,
            ACL="private",
            **put_kwargs,
        )
