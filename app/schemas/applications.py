from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

ResponseValue = Union[str, int, float, bool, list[str], None]


class FormResponseEntry(BaseModel):
    key: Optional[str] = None
    label: str
    value: ResponseValue = None


class ApplicationSubmit(BaseModel):
    scholarship_id: UUID
    student_id: UUID
    custom_form_response: list[FormResponseEntry]


class FieldUploadStatusRead(BaseModel):
    field_key: str
    field_label: str
    required: bool
    status: str
    file_urls: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    completed_at: Optional[str] = None


class ApplicationRead(BaseModel):
    id: UUID
    scholarship_id: UUID
    student_id: UUID
    status: str
    custom_form_response: list[dict[str, Any]] = Field(default_factory=list)
    remarks: Optional[str] = None
    applied_at: Optional[str] = None
    updated_at: Optional[str] = None


class ApplicationSubmitted(BaseModel):
    application: ApplicationRead
    resubmitted: bool = False
    upload_status: list[FieldUploadStatusRead] = Field(default_factory=list)


class ApplicationDetail(BaseModel):
    application: ApplicationRead
    display: list[dict[str, Any]] = Field(default_factory=list)
    upload_status: list[FieldUploadStatusRead] = Field(default_factory=list)
    completeness: float = 1.0
    is_complete: bool = True
