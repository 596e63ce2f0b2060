from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.scholarship import Scholarship
from app.models.scholarship_application import ScholarshipApplication
from app.schemas.scholarships import ScholarshipCreate, ScholarshipPatch
from app.services.form_definition import (
    FormDefinitionError,
    parse_form_definition,
    serialize_form_definition,
    validate_form_definition,
)
from app.services.form_fields import FieldDefinition
from app.services.form_renderer import render_form_controls

logger = logging.getLogger("app.forms")


def _to_iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def uuid_or_400(raw: str | None, field_name: str) -> uuid.UUID:
    if not raw:
        raise HTTPException(status_code=400, detail=f'Field "{field_name}" is required')
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise HTTPException(status_code=400, detail=f'Invalid "{field_name}"')


def scholarship_or_404(db: Session, scholarship_id: str | uuid.UUID) -> Scholarship:
    scholarship_uuid = scholarship_id if isinstance(scholarship_id, uuid.UUID) else uuid_or_400(scholarship_id, "scholarship_id")
    row = db.get(Scholarship, scholarship_uuid)
    if row is None:
        raise HTTPException(status_code=404, detail="Scholarship not found")
    return row


def validated_definition_or_400(raw: Any) -> list[FieldDefinition]:
    try:
        return validate_form_definition(raw)
    except FormDefinitionError as exc:
        raise HTTPException(
            status_code=400,
            detail={"message": "Invalid custom_form_fields", "errors": exc.problems},
        )


def scholarship_fields(row: Scholarship) -> list[FieldDefinition]:
    return parse_form_definition(row.custom_form_fields)


def scholarship_row(row: Scholarship) -> dict[str, Any]:
    return {
        "id": row.id,
        "sponsor_id": row.sponsor_id,
        "title": row.title,
        "description": row.description,
        "status": row.status,
        "application_deadline": _to_iso(row.application_deadline),
        "custom_form_fields": serialize_form_definition(scholarship_fields(row)),
        "created_at": _to_iso(row.created_at),
        "updated_at": _to_iso(row.updated_at),
    }


def create_scholarship_service(payload: ScholarshipCreate, db: Session) -> dict[str, Any]:
    fields = validated_definition_or_400(payload.custom_form_fields)
    row = Scholarship(
        sponsor_id=payload.sponsor_id,
        title=payload.title.strip(),
        description=payload.description,
        status=payload.status,
        application_deadline=payload.application_deadline,
        custom_form_fields=serialize_form_definition(fields),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("scholarship_created id=%s fields=%s", row.id, len(fields))
    return scholarship_row(row)


def update_scholarship_service(scholarship_id: str, payload: ScholarshipPatch, db: Session) -> dict[str, Any]:
    row = scholarship_or_404(db, scholarship_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    if "custom_form_fields" in changes:
        if changes["custom_form_fields"] is None:
            raise HTTPException(status_code=400, detail="custom_form_fields must not be null")
        has_applications = (
            db.query(ScholarshipApplication.id)
            .filter(ScholarshipApplication.scholarship_id == row.id)
            .first()
        )
        if has_applications is not None:
            raise HTTPException(
                status_code=409,
                detail="The application form cannot change once students have applied",
            )
        fields = validated_definition_or_400(changes["custom_form_fields"])
        row.custom_form_fields = serialize_form_definition(fields)
    if "title" in changes:
        title = str(changes.get("title") or "").strip()
        if not title:
            raise HTTPException(status_code=400, detail='Field "title" must not be empty')
        row.title = title
    if "description" in changes:
        row.description = changes.get("description")
    if "status" in changes and changes.get("status"):
        row.status = changes["status"]
    if "application_deadline" in changes:
        row.application_deadline = changes.get("application_deadline")

    db.add(row)
    db.commit()
    db.refresh(row)
    return scholarship_row(row)


def get_scholarship_form_service(scholarship_id: str, db: Session) -> dict[str, Any]:
    row = scholarship_or_404(db, scholarship_id)
    fields = scholarship_fields(row)
    try:
        controls = render_form_controls(fields)
    except FormDefinitionError as exc:
        logger.error("scholarship_form_broken id=%s problems=%s", row.id, exc.problems)
        raise HTTPException(status_code=409, detail={"message": "Scholarship form is misconfigured", "errors": exc.problems})
    return {
        "scholarship_id": row.id,
        "fields": serialize_form_definition(fields),
        "controls": [control.to_dict() for control in controls],
    }
