from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class LogSymptom(Base):
    """Symptom observed on a log, with severity on a 1-5 scale."""
    __tablename__ = "log_symptoms"

    log_id = Column(Uuid, ForeignKey('logs.id', ondelete='CASCADE'), primary_key=True)
    symptom_id = Column(Integer, ForeignKey('symptoms.id', ondelete='CASCADE'), primary_key=True)
    severity = Column(Integer, nullable=False)

    log = relationship("Log", back_populates="log_symptoms")
    symptom = relationship("Symptom", back_populates="log_symptoms")

    __table_args__ = (
        CheckConstraint('severity >= 1 AND severity <= 5', name='ck_log_symptoms_severity_range'),
    )
