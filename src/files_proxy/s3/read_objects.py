"""Functions for reading objects from an S3 bucket."""

from typing import TYPE_CHECKING, Optional

from botocore.exceptions import ClientError

from files_proxy.utils.decorators import log_execution_time

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client
    from mypy_boto3_s3.type_defs import GetObjectOutputTypeDef

MISSING_OBJECT_ERROR_CODES = {"NoSuchKey", "404", "NotFound"}


def is_missing_object_error(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in MISSING_OBJECT_ERROR_CODES


@log_execution_time
def bucket_is_reachable(s3_client: "S3Client", bucket_name: str) -> bool:
    """
    Check that the bucket exists and the configured credentials can reach it.

    :param s3_client: The shared boto3 S3 client.
    :param bucket_name: Name of the S3 bucket.
    """
    s3_client.head_bucket(Bucket=bucket_name)
    return True


@log_execution_time
def fetch_s3_object(
    s3_client: "S3Client", bucket_name: str, object_key: str
) -> Optional["GetObjectOutputTypeDef"]:
    """
    Fetch an object from the S3 bucket.

    :param s3_client: The shared boto3 S3 client.
    :param bucket_name: Name of the S3 bucket.
    :param object_key: Key of the object to fetch.

    :return: The get_object response, or None if the key does not exist.
        Any other client error propagates.
    """
    try:
        return s3_client.get_object(Bucket=bucket_name, Key=object_key)
    except ClientError as err:
        if is_missing_object_error(err):
            return None
        raise
