"""
Normalization monitoring.

Every call to POST /ingredients/normalize is recorded as a NormalizationEvent;
GET /ingredients/stats summarizes the recent ones for admins.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from statistics import fmean
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from app.config import settings
from app.models import NormalizationEvent

_DIGITS = re.compile(r"[0-9]+")
_FILLER = re.compile(r"\b(the|a|an|with|and|or|in|on|of)\b")


class NormalizationAnalyticsService:
    """Service for recording normalizer calls and summarizing them."""

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def extract_pattern(raw_text: str) -> str:
        """
        Reduce raw text to a shape that is safe to store and group by.

        "2 cups of the tomatoes" -> "NUM cups STOP STOP tomatoes"
        """
        text = _DIGITS.sub("NUM", (raw_text or "").lower())
        text = _FILLER.sub("STOP", text)
        return " ".join(text.split())[:100]

    @staticmethod
    def summarize_method(matches: List[Dict]) -> str:
        """The tier that produced the matches, "hybrid" when several did."""
        methods = {m["match_method"] for m in matches}
        if not methods:
            return "none"
        if len(methods) == 1:
            return methods.pop()
        return "hybrid"

    def record(
        self,
        user_id: Optional[UUID],
        raw_text: str,
        matches: List[Dict],
        processing_time_ms: float,
        error_code: Optional[str] = None,
    ) -> NormalizationEvent:
        """
        Store one normalizer call.

        Args:
            user_id: Caller, if known
            raw_text: Text as submitted; only its pattern is kept
            matches: Results returned to the caller, empty on failure
            processing_time_ms: Wall-clock time spent normalizing
            error_code: NormalizationError code when the call failed

        Returns:
            Created NormalizationEvent record
        """
        confidences = [float(m["match_confidence"]) for m in matches]
        event = NormalizationEvent(
            user_id=user_id,
            pattern=self.extract_pattern(raw_text),
            method=self.summarize_method(matches),
            match_count=len(matches),
            avg_confidence=round(fmean(confidences), 3) if confidences else None,
            processing_time_ms=max(0, int(round(processing_time_ms))),
            error_code=error_code,
        )

        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)

        self.logger.info(
            "Normalization event: %d matches via %s in %dms",
            event.match_count,
            event.method,
            event.processing_time_ms,
            extra={
                "extra_fields": {
                    "event": "ingredient_normalization",
                    "match_count": event.match_count,
                    "method": event.method,
                    "avg_confidence": event.avg_confidence,
                    "processing_time_ms": event.processing_time_ms,
                    "error_code": error_code,
                    "raw_text_length": len(raw_text or ""),
                }
            },
        )
        return event

    def get_stats(
        self, window_hours: Optional[int] = None, failure_limit: Optional[int] = None
    ) -> Dict:
        """
        Summarize normalizer calls over the last window_hours.

        A call counts as a failure when it returned no match. Health is
        "degraded" once the failure rate reaches the configured threshold.
        """
        if window_hours is None:
            window_hours = settings.normalization_stats_window_hours
        if failure_limit is None:
            failure_limit = settings.normalization_stats_failure_patterns

        cutoff = datetime.now(timezone.utc) - timedelta(hours=window_hours)
        in_window = NormalizationEvent.created_at >= cutoff
        failed = NormalizationEvent.match_count == 0

        totals = (
            self.db.query(
                func.count(NormalizationEvent.id).label("total_requests"),
                func.avg(NormalizationEvent.processing_time_ms).label("avg_processing_time_ms"),
                func.count(distinct(NormalizationEvent.user_id)).label("unique_users"),
            )
            .filter(in_window)
            .first()
        )
        total_requests = totals.total_requests or 0

        failures = (
            self.db.query(func.count(NormalizationEvent.id)).filter(in_window, failed).scalar()
            or 0
        )
        avg_confidence = (
            self.db.query(func.avg(NormalizationEvent.avg_confidence))
            .filter(in_window, NormalizationEvent.match_count > 0)
            .scalar()
        )

        method_rows = (
            self.db.query(NormalizationEvent.method, func.count(NormalizationEvent.id))
            .filter(in_window)
            .group_by(NormalizationEvent.method)
            .all()
        )

        pattern_count = func.count(NormalizationEvent.id)
        pattern_rows = (
            self.db.query(NormalizationEvent.pattern, pattern_count)
            .filter(in_window, failed)
            .group_by(NormalizationEvent.pattern)
            .order_by(pattern_count.desc(), NormalizationEvent.pattern)
            .limit(failure_limit)
            .all()
        )

        failure_rate = round(failures / total_requests, 3) if total_requests else 0.0
        avg_processing_time_ms = int(round(float(totals.avg_processing_time_ms or 0)))
        healthy = failure_rate < settings.normalization_healthy_failure_rate

        return {
            "window_hours": window_hours,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "performance": {
                "total_requests": total_requests,
                "avg_processing_time_ms": avg_processing_time_ms,
                "avg_confidence": round(float(avg_confidence or 0), 3),
                "failure_rate": failure_rate,
                "method_distribution": {method: count for method, count in method_rows},
            },
            "usage": {"unique_users": totals.unique_users or 0},
            "health": {
                "status": "healthy" if healthy else "degraded",
                "failure_rate": failure_rate,
                "avg_processing_time_ms": avg_processing_time_ms,
            },
            "failure_patterns": [
                {
                    "pattern": pattern,
                    "count": count,
                    "percentage": round(count * 100 / max(1, total_requests), 2),
                }
                for pattern, count in pattern_rows
            ],
        }
