####################################
# --- Request/response schemas --- #
####################################

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Response model for `POST /upload`."""
    identifier: str = Field(
        description="Opaque identifier of the stored file: `<unix_time_ms>-<filename>`.",
        json_schema_extra={"example": "1718000000000-hello.txt"},
    )
    hash: str = Field(
        description="Same value as `identifier`, kept for clients of the ipfs-style API.",
        json_schema_extra={"example": "1718000000000-hello.txt"},
    )
    url: str = Field(
        description="Relative URL the file can be fetched from.",
        json_schema_extra={"example": "/file/1718000000000-hello.txt"},
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "identifier": "1718000000000-hello.txt",
                "hash": "1718000000000-hello.txt",
                "url": "/file/1718000000000-hello.txt",
            }
        }
    )


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str = Field(description="`ok` when every component is ready, `degraded` otherwise.")
    components: Dict[str, str]
    ready: bool


class ErrorResponse(BaseModel):
    """Body of every error response."""
    detail: str
