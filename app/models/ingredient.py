import re

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.database import Base


class Ingredient(Base):
    """Canonical ingredient with a normalized name for matching and correlation analysis."""
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)  # Display name, e.g. "Spicy Food"
    normalized_name = Column(String(100), nullable=False, unique=True, index=True)  # "spicy food"
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    log_ingredients = relationship("LogIngredient", back_populates="ingredient")
    aliases = relationship("IngredientAlias", back_populates="ingredient", cascade="all, delete-orphan")

    @staticmethod
    def normalize_name(name: str) -> str:
        """Normalize ingredient name for consistent matching: lowercase, single-spaced."""
        return re.sub(r"\s+", " ", name.strip().lower())


class IngredientAlias(Base):
    """Alternative spelling that resolves deterministically to a canonical ingredient."""
    __tablename__ = "ingredient_aliases"

    id = Column(Integer, primary_key=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False, index=True)
    alias = Column(String(100), nullable=False)
    normalized_alias = Column(String(100), nullable=False, unique=True, index=True)

    ingredient = relationship("Ingredient", back_populates="aliases")
