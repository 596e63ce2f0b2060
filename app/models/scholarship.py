import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin


class Scholarship(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "scholarships"

    sponsor_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    application_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Canonical JSON array of field definitions, see app.services.form_definition
    custom_form_fields: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
