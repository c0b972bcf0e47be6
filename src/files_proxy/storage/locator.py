"""Map identifiers to their local path and remote key.

An identifier is ``<unix_time_ms>-<original_filename>``. The same string is the
file name inside the storage directory and the object key in the bucket, so
no index is kept anywhere: lookups always compute the location.
"""

import time
from pathlib import Path
from typing import Optional, Union

from files_proxy.errors import InvalidIdentifierError, InvalidUploadError

_FORBIDDEN_NAMES = {"", ".", ".."}

# NAME_MAX on common filesystems and the S3 key limit are both at least this.
MAX_IDENTIFIER_BYTES = 255


def validate_identifier(identifier: str) -> str:
    """Return ``identifier`` if it names exactly one entry of the storage directory."""
    if (
        identifier in _FORBIDDEN_NAMES
        or "/" in identifier
        or "\\" in identifier
        or "\x00" in identifier
        or len(identifier.encode("utf-8")) > MAX_IDENTIFIER_BYTES
    ):
        raise InvalidIdentifierError(f"Invalid identifier: {identifier!r}")
    return identifier


def sanitize_filename(filename: Optional[str]) -> str:
    """Reduce a client-supplied filename to its final path component."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1].replace("\x00", "")
    if name in _FORBIDDEN_NAMES:
        raise InvalidUploadError("Uploaded file has no usable filename")
    return name


def make_identifier(filename: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = current_time_ms()
    identifier = f"{timestamp_ms}-{sanitize_filename(filename)}"
    if len(identifier.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise InvalidUploadError(
            f"Filename too long: identifiers are limited to {MAX_IDENTIFIER_BYTES} bytes"
        )
    return identifier


def identifier_timestamp(identifier: str) -> int:
    """Upload time in milliseconds encoded in ``identifier``."""
    return int(validate_identifier(identifier).split("-", 1)[0])


def current_time_ms() -> int:
    return time.time_ns() // 1_000_000


def identifier_to_path(storage_dir: Union[str, Path], identifier: str) -> Path:
    """Local path of the object named by ``identifier``."""
    return Path(storage_dir) / validate_identifier(identifier)


def identifier_to_key(identifier: str) -> str:
    """Bucket key of the object named by ``identifier``."""
    return validate_identifier(identifier)


def identifier_to_url(identifier: str) -> str:
    """Relative URL the retrieval route serves ``identifier`` under."""
    return f"/file/{validate_identifier(identifier)}"
