import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base
from app.models.common import UUIDMixin, TimestampMixin, utcnow


class ScholarshipApplication(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "scholarship_applications"
    __table_args__ = (
        UniqueConstraint("student_id", "scholarship_id", name="uq_scholarship_applications_student_scholarship"),
    )

    scholarship_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    student_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    custom_form_response: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
