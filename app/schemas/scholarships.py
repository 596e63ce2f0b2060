from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

ScholarshipStatus = Literal["draft", "active", "closed", "suspended", "archived"]


class ScholarshipCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    sponsor_id: Optional[UUID] = None
    status: ScholarshipStatus = "active"
    application_deadline: Optional[datetime] = None
    # Array, JSON string, or {"fields": [...]}; stored as a canonical array.
    custom_form_fields: Any


class ScholarshipPatch(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[ScholarshipStatus] = None
    application_deadline: Optional[datetime] = None
    custom_form_fields: Any = None


class ScholarshipRead(BaseModel):
    id: UUID
    sponsor_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    status: str
    application_deadline: Optional[str] = None
    custom_form_fields: list[dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ScholarshipFormRead(BaseModel):
    scholarship_id: UUID
    fields: list[dict[str, Any]] = Field(default_factory=list)
    controls: list[dict[str, Any]] = Field(default_factory=list)
