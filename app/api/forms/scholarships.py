from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.scholarships import ScholarshipCreate, ScholarshipFormRead, ScholarshipPatch, ScholarshipRead
from app.services.scholarships import (
    create_scholarship_service,
    get_scholarship_form_service,
    scholarship_or_404,
    scholarship_row,
    update_scholarship_service,
)

router = APIRouter()


@router.post("", response_model=ScholarshipRead, status_code=201)
def create_scholarship(payload: ScholarshipCreate, db: Session = Depends(get_db)):
    return create_scholarship_service(payload, db)


@router.get("/{scholarship_id}", response_model=ScholarshipRead)
def get_scholarship(scholarship_id: str, db: Session = Depends(get_db)):
    return scholarship_row(scholarship_or_404(db, scholarship_id))


@router.patch("/{scholarship_id}", response_model=ScholarshipRead)
def update_scholarship(scholarship_id: str, payload: ScholarshipPatch, db: Session = Depends(get_db)):
    return update_scholarship_service(scholarship_id, payload, db)


@router.get("/{scholarship_id}/form", response_model=ScholarshipFormRead)
def get_scholarship_form(scholarship_id: str, db: Session = Depends(get_db)):
    return get_scholarship_form_service(scholarship_id, db)
