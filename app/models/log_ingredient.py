from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class LogIngredient(Base):
    """Junction table linking logs to canonical ingredients, keeping the text the user typed."""
    __tablename__ = "log_ingredients"

    id = Column(Integer, primary_key=True)
    log_id = Column(Uuid, ForeignKey('logs.id', ondelete='CASCADE'), nullable=False)
    ingredient_id = Column(Integer, ForeignKey('ingredients.id', ondelete='CASCADE'), nullable=False)
    raw_text = Column(String(100))  # As entered, before normalization
    match_confidence = Column(Numeric(3, 2))  # 0.00-1.00 when resolved by the normalizer

    # Relationships
    log = relationship("Log", back_populates="log_ingredients")
    ingredient = relationship("Ingredient", back_populates="log_ingredients")

    __table_args__ = (
        UniqueConstraint('log_id', 'ingredient_id', name='uq_log_ingredients_log_ingredient'),
        Index('idx_log_ingredients_ingredient_id', 'ingredient_id'),
    )
