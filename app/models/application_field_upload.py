import uuid
from datetime import datetime

from sqlalchemy import Boolean, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin


class ApplicationFieldUpload(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "application_field_uploads"
    __table_args__ = (
        UniqueConstraint("application_id", "field_key", name="uq_application_field_uploads_application_field"),
    )

    application_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    field_key: Mapped[str] = mapped_column(String(80), nullable=False)
    field_label: Mapped[str] = mapped_column(String(200), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING", index=True)
    request_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    object_keys: Mapped[list | None] = mapped_column(JSON, nullable=True)
    file_urls: Mapped[list | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(String(500), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
