from fastapi import APIRouter
from app.api.forms import scholarships, applications

router = APIRouter()
router.include_router(scholarships.router, prefix="/scholarships", tags=["Scholarships"])
router.include_router(applications.router, prefix="/applications", tags=["Applications"])
