# call_scheduler/routers/consultants.py
"""
Consultants API.

GET /consultants - active consultants a customer can book
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.consultants import ConsultantSummary
from ..services.consultants import list_active_consultants


router = APIRouter(prefix="/consultants", tags=["consultants"])


@router.get("", response_model=list[ConsultantSummary])
def get_consultants(db: Session = Depends(get_db)):
    return [ConsultantSummary(**c) for c in list_active_consultants(db)]
