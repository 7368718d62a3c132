"""Trigger analysis endpoint."""
import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import DatabaseError, ValidationError
from app.models.user import User
from app.services.auth.dependencies import get_current_user
from app.services.trigger_service import TriggerAnalysisService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/triggers", tags=["triggers"])


@router.get("")
async def get_triggers(
    start_date: date = Query(..., description="First day of the analysis window (ISO date)"),
    end_date: date = Query(..., description="Last day of the analysis window (ISO date)"),
    limit: int = Query(settings.trigger_default_limit, ge=1, le=settings.trigger_max_limit),
    detailed: bool = Query(False, description="Include per-log correlation rows"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Rank ingredients by how much they raise symptom severity over the window.

    Ingredients eaten fewer than the minimum number of times, or windows with
    too few logs, produce no triggers rather than an error.
    """
    if start_date > end_date:
        raise ValidationError(
            "Invalid date range",
            details=[{"field": "start_date", "message": "start_date must be on or before end_date"}],
        )

    service = TriggerAnalysisService(db, logger=logger)
    try:
        analysis = service.analyze(
            user.id, start_date, end_date, limit=limit, detailed=detailed
        )
    except SQLAlchemyError as e:
        logger.exception("Trigger analysis query failed for user %s", user.id)
        raise DatabaseError("Failed to analyze triggers") from e

    response = {
        "triggers": analysis["triggers"],
        "analysis_period": {
            "start_date": start_date,
            "end_date": end_date,
            "total_logs": analysis["total_logs"],
        },
        "meta": analysis["meta"],
    }
    if detailed:
        response["correlations"] = analysis["correlations"]
    return response
