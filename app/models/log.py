import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base


class Log(Base):
    """A dated meal entry: what was eaten and which symptoms followed."""

    __tablename__ = "logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    log_date = Column(Date, nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="logs")
    log_ingredients = relationship(
        "LogIngredient", back_populates="log", cascade="all, delete-orphan"
    )
    log_symptoms = relationship(
        "LogSymptom", back_populates="log", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_logs_user_id_log_date", "user_id", "log_date"),
    )
