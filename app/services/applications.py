from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.application_field_upload import ApplicationFieldUpload
from app.models.scholarship import Scholarship
from app.models.scholarship_application import ScholarshipApplication
from app.schemas.applications import ApplicationSubmit
from app.services.form_display import form_completeness, interpret_form_response
from app.services.form_fields import FieldDefinition
from app.services.form_response import assemble_form_response, response_values_by_label
from app.services.form_schema import compile_form_schema, summarize_validation_errors
from app.services.scholarships import scholarship_fields, scholarship_or_404, uuid_or_400

logger = logging.getLogger("app.forms")

APPLICATION_STATUS_PENDING = "pending"
APPLICATION_STATUS_DENIED = "denied"

UPLOAD_STATUS_PENDING = "PENDING"
UPLOAD_STATUS_UPLOADED = "UPLOADED"
UPLOAD_STATUS_FAILED = "FAILED"

DUPLICATE_APPLICATION_DETAIL = "You have already applied to this scholarship"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def application_row(row: ScholarshipApplication) -> dict[str, Any]:
    return {
        "id": row.id,
        "scholarship_id": row.scholarship_id,
        "student_id": row.student_id,
        "status": row.status,
        "custom_form_response": list(row.custom_form_response or []),
        "remarks": row.remarks,
        "applied_at": _to_iso(row.applied_at),
        "updated_at": _to_iso(row.updated_at),
    }


def upload_status_row(row: ApplicationFieldUpload) -> dict[str, Any]:
    return {
        "field_key": row.field_key,
        "field_label": row.field_label,
        "required": bool(row.required),
        "status": row.status,
        "file_urls": list(row.file_urls or []),
        "error": row.error,
        "completed_at": _to_iso(row.completed_at),
    }


def application_or_404(db: Session, application_id: str) -> ScholarshipApplication:
    row = db.get(ScholarshipApplication, uuid_or_400(application_id, "application_id"))
    if row is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return row


def list_upload_rows(db: Session, application: ScholarshipApplication) -> list[ApplicationFieldUpload]:
    return (
        db.query(ApplicationFieldUpload)
        .filter(ApplicationFieldUpload.application_id == application.id)
        .order_by(ApplicationFieldUpload.created_at.asc(), ApplicationFieldUpload.field_key.asc())
        .all()
    )


def ensure_scholarship_accepting_or_400(scholarship: Scholarship) -> None:
    if str(scholarship.status or "") != "active":
        raise HTTPException(status_code=400, detail="This scholarship is not accepting applications")
    deadline = scholarship.application_deadline
    if deadline is not None and _as_aware(deadline) < _now_utc():
        raise HTTPException(status_code=400, detail="Application deadline has passed")


def _canonical_response_or_400(fields: list[FieldDefinition], payload: ApplicationSubmit) -> list[dict[str, Any]]:
    known_labels = {item.label for item in fields}
    entries = [entry.model_dump() for entry in payload.custom_form_response]
    unknown = [entry["label"] for entry in entries if entry["label"] not in known_labels]
    if unknown:
        raise HTTPException(status_code=400, detail="Unknown form fields: " + ", ".join(unknown))

    values = response_values_by_label(entries)
    errors = compile_form_schema(fields).validate(values)
    if errors:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "\n".join(summarize_validation_errors(errors)),
                "errors": [error.to_dict() for error in errors],
            },
        )
    return assemble_form_response(fields, values)


def _reset_upload_rows(db: Session, application: ScholarshipApplication, fields: list[FieldDefinition]) -> None:
    db.query(ApplicationFieldUpload).filter(ApplicationFieldUpload.application_id == application.id).delete()
    for item in fields:
        if not item.is_file:
            continue
        db.add(
            ApplicationFieldUpload(
                application_id=application.id,
                field_key=item.key,
                field_label=item.label,
                required=bool(item.required),
                status=UPLOAD_STATUS_PENDING,
            )
        )


def find_student_application(db: Session, student_id, scholarship_id) -> ScholarshipApplication | None:
    return (
        db.query(ScholarshipApplication)
        .filter(
            ScholarshipApplication.student_id == student_id,
            ScholarshipApplication.scholarship_id == scholarship_id,
        )
        .first()
    )


def submit_application_service(payload: ApplicationSubmit, db: Session) -> dict[str, Any]:
    scholarship = scholarship_or_404(db, payload.scholarship_id)
    ensure_scholarship_accepting_or_400(scholarship)
    fields = scholarship_fields(scholarship)
    response = _canonical_response_or_400(fields, payload)

    existing = find_student_application(db, payload.student_id, scholarship.id)
    resubmitted = False
    if existing is not None:
        # Only a denied application may be submitted again.
        if existing.status != APPLICATION_STATUS_DENIED:
            raise HTTPException(status_code=400, detail=DUPLICATE_APPLICATION_DETAIL)
        existing.custom_form_response = response
        existing.status = APPLICATION_STATUS_PENDING
        existing.remarks = None
        existing.applied_at = _now_utc()
        row = existing
        resubmitted = True
    else:
        row = ScholarshipApplication(
            scholarship_id=scholarship.id,
            student_id=payload.student_id,
            status=APPLICATION_STATUS_PENDING,
            custom_form_response=response,
        )
    try:
        db.add(row)
        db.flush()
        _reset_upload_rows(db, row, fields)
        db.commit()
        db.refresh(row)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=DUPLICATE_APPLICATION_DETAIL)
    logger.info(
        "application_submitted id=%s scholarship=%s resubmitted=%s",
        row.id,
        scholarship.id,
        resubmitted,
    )
    return {
        "application": application_row(row),
        "resubmitted": resubmitted,
        "upload_status": [upload_status_row(u) for u in list_upload_rows(db, row)],
    }


def get_application_detail_service(application_id: str, db: Session) -> dict[str, Any]:
    row = application_or_404(db, application_id)
    scholarship = db.get(Scholarship, row.scholarship_id)
    fields = scholarship_fields(scholarship) if scholarship is not None else []
    uploads = list_upload_rows(db, row)
    response = list(row.custom_form_response or [])
    is_complete = all(u.status == UPLOAD_STATUS_UPLOADED for u in uploads if u.required)
    return {
        "application": application_row(row),
        "display": interpret_form_response(response, fields),
        "upload_status": [upload_status_row(u) for u in uploads],
        "completeness": form_completeness(fields, response),
        "is_complete": is_complete and not any(u.status == UPLOAD_STATUS_FAILED for u in uploads),
    }
