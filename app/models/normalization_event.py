"""NormalizationEvent model for monitoring the ingredient normalizer."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Uuid

from app.database import Base


class NormalizationEvent(Base):
    """One call to the normalizer: how it matched, how fast, or why it failed."""

    __tablename__ = "normalization_events"

    id = Column(Integer, primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    # Raw text is never stored; digits become NUM and filler words STOP
    pattern = Column(String(100), nullable=False)
    method = Column(String(20), nullable=False)  # deterministic, fuzzy, llm, hybrid, none

    match_count = Column(Integer, nullable=False, default=0)
    avg_confidence = Column(Float, nullable=True)  # None when nothing matched
    processing_time_ms = Column(Integer, nullable=False, default=0)
    error_code = Column(String(50), nullable=True)  # NormalizationError code on failure

    def __repr__(self):
        return f"<NormalizationEvent(id={self.id}, method={self.method}, matches={self.match_count})>"
