"""Canonical symptom list."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas import CatalogItem
from app.services.catalog_service import catalog_service

router = APIRouter(prefix="/symptoms", tags=["symptoms"])


@router.get("")
async def list_symptoms(db: Session = Depends(get_db)):
    """All symptoms a log can reference by id."""
    return {"data": [CatalogItem.model_validate(s) for s in catalog_service.list_symptoms(db)]}
