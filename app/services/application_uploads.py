from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import ClientError
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.application_field_upload import ApplicationFieldUpload
from app.models.scholarship import Scholarship
from app.models.scholarship_application import ScholarshipApplication
from app.schemas.uploads import FieldUploadCompletePayload, FieldUploadFailPayload, FieldUploadInitPayload
from app.services.applications import (
    UPLOAD_STATUS_FAILED,
    UPLOAD_STATUS_UPLOADED,
    application_or_404,
)
from app.services.form_definition import find_field
from app.services.form_fields import FieldDefinition
from app.services.form_response import patch_form_response_files
from app.services.s3_storage import application_field_prefix, build_field_object_key, get_s3_storage
from app.services.scholarships import scholarship_fields

logger = logging.getLogger("app.uploads")


def _max_file_bytes() -> int:
    return int(settings.MAX_FILE_MB) * 1024 * 1024


def _file_field_or_404(db: Session, application: ScholarshipApplication, field_ref: str) -> FieldDefinition:
    scholarship = db.get(Scholarship, application.scholarship_id)
    fields = scholarship_fields(scholarship) if scholarship is not None else []
    item = find_field(fields, field_ref)
    if item is None or not item.is_file:
        raise HTTPException(status_code=404, detail="File field not found in this application form")
    return item


def _upload_row_or_404(db: Session, application: ScholarshipApplication, item: FieldDefinition) -> ApplicationFieldUpload:
    row = (
        db.query(ApplicationFieldUpload)
        .filter(
            ApplicationFieldUpload.application_id == application.id,
            ApplicationFieldUpload.field_key == item.key,
        )
        .first()
    )
    if row is None:
        raise HTTPException(status_code=404, detail="No upload slot for this field")
    return row


def _result(row: ApplicationFieldUpload, *, replayed: bool = False) -> dict[str, Any]:
    return {
        "status": row.status,
        "field_key": row.field_key,
        "field_label": row.field_label,
        "file_urls": list(row.file_urls or []),
        "replayed": replayed,
    }


def init_field_upload_service(
    application_id: str,
    field_ref: str,
    payload: FieldUploadInitPayload,
    db: Session,
) -> dict[str, Any]:
    application = application_or_404(db, application_id)
    item = _file_field_or_404(db, application, field_ref)
    _upload_row_or_404(db, application, item)

    size = int(payload.size_bytes or 0)
    if size <= 0:
        raise HTTPException(status_code=400, detail="Invalid file size")
    if size > _max_file_bytes():
        raise HTTPException(status_code=400, detail=f"File exceeds the {settings.MAX_FILE_MB} MB limit")
    if int(payload.index) >= int(settings.MAX_FILES_PER_FIELD):
        raise HTTPException(status_code=400, detail=f"At most {settings.MAX_FILES_PER_FIELD} files per field")
    mime_type = str(payload.mime_type or "").strip().lower()
    if mime_type not in settings.allowed_mime_types:
        raise HTTPException(status_code=400, detail=f"File type {payload.mime_type} is not allowed")

    key = build_field_object_key(str(application.id), item.key, payload.request_key, payload.index, payload.file_name)
    presigned_url = get_s3_storage().create_presigned_put_url(key, mime_type)
    return {"key": key, "presigned_url": presigned_url}


def complete_field_upload_service(
    application_id: str,
    field_ref: str,
    payload: FieldUploadCompletePayload,
    db: Session,
) -> dict[str, Any]:
    application = application_or_404(db, application_id)
    item = _file_field_or_404(db, application, field_ref)
    row = _upload_row_or_404(db, application, item)

    if row.status == UPLOAD_STATUS_UPLOADED:
        if row.request_key == payload.request_key:
            return _result(row, replayed=True)
        raise HTTPException(status_code=409, detail="Files for this field were already uploaded")

    keys = [str(key or "").strip() for key in payload.keys if str(key or "").strip()]
    if not keys:
        raise HTTPException(status_code=400, detail="No files provided")
    if len(keys) > int(settings.MAX_FILES_PER_FIELD):
        raise HTTPException(status_code=400, detail=f"At most {settings.MAX_FILES_PER_FIELD} files per field")
    prefix = application_field_prefix(str(application.id), item.key) + payload.request_key[:16] + "-"
    if any(not key.startswith(prefix) for key in keys):
        raise HTTPException(status_code=400, detail="Object key does not belong to this upload")

    storage = get_s3_storage()
    for key in keys:
        try:
            head = storage.head_object(key)
        except ClientError:
            raise HTTPException(status_code=400, detail="File not found in storage")
        actual_size = int(head.get("ContentLength") or 0)
        if actual_size <= 0 or actual_size > _max_file_bytes():
            raise HTTPException(status_code=400, detail=f"File exceeds the {settings.MAX_FILE_MB} MB limit")
    file_urls = [storage.create_presigned_get_url(key) for key in keys]

    # Other fields of the same application complete concurrently; patch the latest stored response under a row lock.
    db.refresh(application, with_for_update=True)
    db.refresh(row)
    if row.status == UPLOAD_STATUS_UPLOADED:
        if row.request_key == payload.request_key:
            return _result(row, replayed=True)
        raise HTTPException(status_code=409, detail="Files for this field were already uploaded")
    try:
        application.custom_form_response = patch_form_response_files(
            list(application.custom_form_response or []), item, file_urls
        )
    except LookupError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    row.status = UPLOAD_STATUS_UPLOADED
    row.request_key = payload.request_key
    row.object_keys = keys
    row.file_urls = file_urls
    row.error = None
    row.completed_at = datetime.now(timezone.utc)
    db.add(application)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("field_upload_completed application=%s field=%s files=%s", application.id, item.key, len(keys))
    return _result(row)


def fail_field_upload_service(
    application_id: str,
    field_ref: str,
    payload: FieldUploadFailPayload,
    db: Session,
) -> dict[str, Any]:
    application = application_or_404(db, application_id)
    item = _file_field_or_404(db, application, field_ref)
    row = _upload_row_or_404(db, application, item)
    if row.status == UPLOAD_STATUS_UPLOADED:
        return _result(row, replayed=True)
    row.status = UPLOAD_STATUS_FAILED
    row.request_key = payload.request_key or row.request_key
    row.error = str(payload.error or "Upload failed")[:500]
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.warning("field_upload_failed application=%s field=%s error=%s", application.id, item.key, row.error)
    return _result(row)
