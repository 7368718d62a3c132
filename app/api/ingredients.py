"""Canonical ingredient list and free-text normalization."""
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import BusinessLogicError, ValidationError
from app.models.user import User
from app.schemas import CatalogItem, NormalizeRequest
from app.services.ai_service import ClaudeService, get_claude_service
from app.services.auth.dependencies import get_current_user, require_admin
from app.services.catalog_service import catalog_service
from app.services.normalization_analytics_service import NormalizationAnalyticsService
from app.services.normalization_service import (
    IngredientNormalizationService,
    NormalizationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingredients", tags=["ingredients"])


@router.get("")
async def list_ingredients(
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Canonical ingredients, optionally filtered by a name substring."""
    ingredients = catalog_service.list_ingredients(db, search=search, limit=limit)
    return {
        "data": [CatalogItem.model_validate(i) for i in ingredients],
        "source": "canonical",
    }


@router.post("/normalize")
async def normalize_ingredient(
    payload: NormalizeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    claude_service: Optional[ClaudeService] = Depends(get_claude_service),
):
    """
    Match free text to canonical ingredients.

    400 when the text is empty, too long, or has nothing ingredient-like;
    422 when no canonical ingredient matches with enough confidence.
    """
    service = IngredientNormalizationService(db, llm_service=claude_service, logger=logger)
    analytics = NormalizationAnalyticsService(db, logger=logger)
    started = time.perf_counter()
    try:
        matches = await service.normalize(payload.raw_text)
    except NormalizationError as e:
        analytics.record(user.id, payload.raw_text, [], _elapsed_ms(started), error_code=e.code)
        if e.code == NormalizationError.INSUFFICIENT_CONFIDENCE:
            raise BusinessLogicError(e.message, status_code=422, details={"code": e.code})
        raise ValidationError.for_field("raw_text", e.message)

    analytics.record(user.id, payload.raw_text, matches, _elapsed_ms(started))
    return {"data": matches, "raw_text": payload.raw_text.strip()}


@router.get("/stats")
async def normalization_stats(
    response: Response,
    window_hours: int = Query(settings.normalization_stats_window_hours, ge=1, le=24 * 30),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Normalizer volume, latency, failure rate and the most common failing inputs."""
    stats = NormalizationAnalyticsService(db, logger=logger).get_stats(window_hours=window_hours)
    response.headers["Cache-Control"] = "private, max-age=60"
    return {"data": stats}


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
