from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class FieldUploadInitPayload(BaseModel):
    request_key: str = Field(min_length=8, max_length=64)
    index: int = Field(ge=0)
    file_name: str
    mime_type: str
    size_bytes: int


class FieldUploadInitResponse(BaseModel):
    method: str = "PRESIGNED_PUT"
    key: str
    presigned_url: str


class FieldUploadCompletePayload(BaseModel):
    request_key: str = Field(min_length=8, max_length=64)
    keys: list[str] = Field(default_factory=list)


class FieldUploadFailPayload(BaseModel):
    request_key: Optional[str] = None
    error: str = Field(default="Upload failed", max_length=500)


class FieldUploadResult(BaseModel):
    status: str
    field_key: str
    field_label: str
    file_urls: list[str] = Field(default_factory=list)
    replayed: bool = False
