"""API endpoints for meal/symptom logs."""
import math
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import BusinessLogicError, NotFoundError, ValidationError
from app.models.user import User
from app.schemas import IngredientRef, LogCreate
from app.services.auth.dependencies import get_current_user
from app.services.log_service import (
    UnknownSymptomError,
    UnresolvedIngredientError,
    log_service,
)

router = APIRouter(prefix="/logs", tags=["logs"])


@router.post("", status_code=201)
async def create_log(
    payload: LogCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a log and return it with resolved ingredient and symptom names.

    Ingredients must resolve to the canonical list; names that do not are
    rejected with 400 (use POST /ingredients/normalize to find matches first).
    """
    try:
        log = log_service.create_log(
            db,
            user_id=user.id,
            log_date=payload.log_date,
            notes=payload.notes,
            ingredients=[
                item.model_dump() if isinstance(item, IngredientRef) else item
                for item in payload.ingredients
            ],
            symptoms=[s.model_dump() for s in payload.symptoms],
        )
    except UnknownSymptomError as e:
        raise BusinessLogicError(
            str(e),
            details=[{"field": "symptoms", "message": str(e)}],
        )
    except UnresolvedIngredientError as e:
        raise BusinessLogicError(
            str(e),
            details=[
                {"field": "ingredients", "message": f"No canonical ingredient matches '{item}'"}
                for item in e.items
            ],
        )
    return {"data": log_service.to_dict(log)}


@router.get("")
async def list_logs(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Paginated logs, newest first."""
    if start_date and end_date and start_date > end_date:
        raise ValidationError.for_field("start_date", "start_date must be on or before end_date")

    logs, total = log_service.list_logs(
        db, user.id, start_date=start_date, end_date=end_date, page=page, per_page=per_page
    )
    return {
        "data": [log_service.to_dict(log) for log in logs],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": math.ceil(total / per_page) if total else 0,
        },
    }


@router.get("/{log_id}")
async def get_log(
    log_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    log = log_service.get_log(db, user.id, log_id)
    if not log:
        raise NotFoundError("Log", log_id)
    return {"data": log_service.to_dict(log)}
