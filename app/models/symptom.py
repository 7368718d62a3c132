from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base


class Symptom(Base):
    """Canonical symptom. Severity is recorded per log in LogSymptom."""

    __tablename__ = "symptoms"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)

    log_symptoms = relationship("LogSymptom", back_populates="symptom")
