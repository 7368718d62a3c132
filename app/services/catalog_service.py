"""Read access to the canonical ingredient and symptom lists."""

from typing import List, Optional

from sqlalchemy.orm import Session

from app.models import Ingredient, Symptom


class CatalogService:
    """Service for canonical reference data."""

    @staticmethod
    def list_ingredients(
        db: Session, search: Optional[str] = None, limit: int = 100
    ) -> List[Ingredient]:
        """Canonical ingredients ordered by name, optionally filtered by substring."""
        query = db.query(Ingredient)
        if search:
            term = Ingredient.normalize_name(search)
            # Escape LIKE wildcards in user input
            term = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            query = query.filter(Ingredient.normalized_name.like(f"%{term}%", escape="\\"))
        return query.order_by(Ingredient.name).limit(limit).all()

    @staticmethod
    def list_symptoms(db: Session) -> List[Symptom]:
        """All canonical symptoms ordered by name."""
        return db.query(Symptom).order_by(Symptom.name).all()


catalog_service = CatalogService()
