"""
Database models for Gutsy.

Import all models here so Alembic can detect them for migrations.
"""

from app.database import Base
from app.models.user import User
from app.models.session import Session
from app.models.ingredient import Ingredient, IngredientAlias
from app.models.symptom import Symptom
from app.models.log import Log
from app.models.log_ingredient import LogIngredient
from app.models.log_symptom import LogSymptom
from app.models.normalization_event import NormalizationEvent

__all__ = [
    "Base",
    "User",
    "Session",
    "Ingredient",
    "IngredientAlias",
    "Symptom",
    "Log",
    "LogIngredient",
    "LogSymptom",
    "NormalizationEvent",
]
