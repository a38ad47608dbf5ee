"""
Pydantic schemas for the upload and listing endpoints.

Response models use camelCase aliases so the JSON matches what the
gallery page expects (fileName, fileUrl, lastModified).
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IncomingFile(BaseModel):
    """A single file received from the multipart form, validated at the boundary."""
    filename: str = Field(..., min_length=1)
    content_type: str
    content: bytes

    @field_validator("content_type")
    @classmethod
    def _normalize_content_type(cls, value: str) -> str:
        # "image/PNG; charset=binary" -> "image/png"
        return value.split(";", 1)[0].strip().lower()

    @property
    def size(self) -> int:
        return len(self.content)


class StoredObject(BaseModel):
    """An object as reported by the store's list operation."""
    key: str
    size: int = Field(..., ge=0)
    last_modified: datetime


class UploadResponse(BaseModel):
    """Response schema for a successful upload."""
    message: str
    file_name: str = Field(..., alias="fileName")
    file_url: str = Field(..., alias="fileUrl")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "File uploaded successfully",
                "fileName": "1718000000000-cat.png",
                "fileUrl": "https://pub-example.r2.dev/1718000000000-cat.png",
            }
        },
    )


class FileEntry(BaseModel):
    """One gallery entry in the listing response."""
    name: str
    url: str
    size: int
    last_modified: datetime = Field(..., alias="lastModified")

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Error body returned for every 4xx/5xx raised by the gallery routes."""
    error: str
