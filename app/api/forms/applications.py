from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.applications import ApplicationDetail, ApplicationSubmit, ApplicationSubmitted
from app.schemas.uploads import (
    FieldUploadCompletePayload,
    FieldUploadFailPayload,
    FieldUploadInitPayload,
    FieldUploadInitResponse,
    FieldUploadResult,
)
from app.services.application_uploads import (
    complete_field_upload_service,
    fail_field_upload_service,
    init_field_upload_service,
)
from app.services.applications import get_application_detail_service, submit_application_service

router = APIRouter()


@router.post("", response_model=ApplicationSubmitted, status_code=201)
def submit_application(payload: ApplicationSubmit, response: Response, db: Session = Depends(get_db)):
    result = submit_application_service(payload, db)
    if result["resubmitted"]:
        response.status_code = 200
    return result


@router.get("/{application_id}", response_model=ApplicationDetail)
def get_application(application_id: str, db: Session = Depends(get_db)):
    return get_application_detail_service(application_id, db)


@router.post("/{application_id}/fields/{field_key}/uploads/init", response_model=FieldUploadInitResponse)
def init_field_upload(
    application_id: str,
    field_key: str,
    payload: FieldUploadInitPayload,
    db: Session = Depends(get_db),
):
    return init_field_upload_service(application_id, field_key, payload, db)


@router.post("/{application_id}/fields/{field_key}/uploads/complete", response_model=FieldUploadResult)
def complete_field_upload(
    application_id: str,
    field_key: str,
    payload: FieldUploadCompletePayload,
    db: Session = Depends(get_db),
):
    return complete_field_upload_service(application_id, field_key, payload, db)


@router.post("/{application_id}/fields/{field_key}/uploads/fail", response_model=FieldUploadResult)
def fail_field_upload(
    application_id: str,
    field_key: str,
    payload: FieldUploadFailPayload,
    db: Session = Depends(get_db),
):
    return fail_field_upload_service(application_id, field_key, payload, db)
