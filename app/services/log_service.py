"""Business logic for meal/symptom logs."""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from app.models import Ingredient, Log, LogIngredient, LogSymptom, Symptom
from app.services.normalization_service import IngredientNormalizationService
from app.services.text_processing import build_phrase

logger = logging.getLogger(__name__)


class UnknownSymptomError(ValueError):
    """One or more symptom ids do not exist."""

    def __init__(self, symptom_ids: List[int]):
        super().__init__(f"Unknown symptom ids: {', '.join(map(str, symptom_ids))}")
        self.symptom_ids = symptom_ids


class UnresolvedIngredientError(ValueError):
    """One or more ingredient items match no canonical ingredient."""

    def __init__(self, items: List[str]):
        super().__init__(f"Could not match ingredients: {', '.join(items)}")
        self.items = items


class LogService:
    """Service for creating and reading logs."""

    @staticmethod
    def clean_ingredient_name(name: str) -> str:
        """Trim and collapse whitespace; truncate to the stored length."""
        return " ".join(name.split())[:100]

    @staticmethod
    def resolve_ingredients(
        db: Session, items: Iterable[Union[str, Dict]]
    ) -> List[Dict]:
        """
        Resolve log ingredient items to existing canonical ingredients.

        An item is either free text, matched by exact name, alias or singular
        form, or {"ingredient_id": int}. The canonical catalogue is never
        extended from user input. Blank text is skipped, and several spellings
        of one ingredient collapse to the first.

        Returns:
            [{"ingredient": Ingredient, "raw_text": str or None, "match_confidence": float}]

        Raises:
            UnresolvedIngredientError: an item matches no canonical ingredient
        """
        matcher = IngredientNormalizationService(db, logger=logger)
        catalog = None
        wanted = []  # (ingredient_id, raw_text, confidence)
        unresolved = []

        for item in items:
            if isinstance(item, dict):
                wanted.append((item["ingredient_id"], None, matcher.EXACT_CONFIDENCE))
                continue
            raw_text = LogService.clean_ingredient_name(item)
            if not raw_text:
                continue
            phrase = build_phrase(raw_text)
            if catalog is None:
                catalog = matcher.load_catalog()
            match = matcher.match_deterministic(phrase, catalog) if phrase else None
            if match is None:
                unresolved.append(raw_text)
            else:
                wanted.append((match["ingredient_id"], raw_text, match["match_confidence"]))

        ids = {ingredient_id for ingredient_id, _raw_text, _confidence in wanted}
        found = {}
        if ids:
            found = {i.id: i for i in db.query(Ingredient).filter(Ingredient.id.in_(ids))}
        unresolved.extend(f"ingredient_id {i}" for i in sorted(ids - found.keys()))
        if unresolved:
            raise UnresolvedIngredientError(unresolved)

        resolved = []
        seen = set()
        for ingredient_id, raw_text, confidence in wanted:
            if ingredient_id in seen:
                continue
            seen.add(ingredient_id)
            resolved.append(
                {
                    "ingredient": found[ingredient_id],
                    "raw_text": raw_text,
                    "match_confidence": confidence,
                }
            )
        return resolved

    @staticmethod
    def create_log(
        db: Session,
        user_id: UUID,
        log_date: date,
        notes: Optional[str] = None,
        ingredients: Optional[List[Union[str, Dict]]] = None,
        symptoms: Optional[List[Dict]] = None,
    ) -> Log:
        """
        Create a log with its ingredients and symptom severities.

        Args:
            db: Database session
            user_id: Owner
            log_date: Day the meal was eaten
            notes: Free-text notes
            ingredients: Names as typed by the user, or {"ingredient_id": int}
            symptoms: [{"symptom_id": int, "severity": 1-5}]

        Raises:
            UnknownSymptomError: a symptom_id does not exist
            UnresolvedIngredientError: an ingredient matches nothing in the catalogue
        """
        symptoms = symptoms or []
        symptom_ids = {s["symptom_id"] for s in symptoms}
        if symptom_ids:
            existing = {
                row.id for row in db.query(Symptom.id).filter(Symptom.id.in_(symptom_ids))
            }
            missing = sorted(symptom_ids - existing)
            if missing:
                raise UnknownSymptomError(missing)

        resolved = LogService.resolve_ingredients(db, ingredients or [])

        log = Log(user_id=user_id, log_date=log_date, notes=notes or None)
        for entry in resolved:
            log.log_ingredients.append(LogIngredient(**entry))
        for entry in symptoms:
            log.log_symptoms.append(
                LogSymptom(symptom_id=entry["symptom_id"], severity=entry["severity"])
            )

        db.add(log)
        db.commit()
        db.refresh(log)
        logger.info(
            "Created log %s for user %s (%d ingredients, %d symptoms)",
            log.id,
            user_id,
            len(log.log_ingredients),
            len(log.log_symptoms),
        )
        return log

    @staticmethod
    def get_log(db: Session, user_id: UUID, log_id: UUID) -> Optional[Log]:
        """Get a log by id, only if it belongs to the user."""
        return (
            db.query(Log)
            .options(
                selectinload(Log.log_ingredients).selectinload(LogIngredient.ingredient),
                selectinload(Log.log_symptoms).selectinload(LogSymptom.symptom),
            )
            .filter(Log.id == log_id, Log.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_logs(
        db: Session,
        user_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> Tuple[List[Log], int]:
        """Page of the user's logs, newest first. Returns (logs, total)."""
        query = db.query(Log).filter(Log.user_id == user_id)
        if start_date:
            query = query.filter(Log.log_date >= start_date)
        if end_date:
            query = query.filter(Log.log_date <= end_date)

        total = query.count()
        logs = (
            query.options(
                selectinload(Log.log_ingredients).selectinload(LogIngredient.ingredient),
                selectinload(Log.log_symptoms).selectinload(LogSymptom.symptom),
            )
            .order_by(Log.log_date.desc(), Log.created_at.desc(), Log.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return logs, total

    @staticmethod
    def to_dict(log: Log) -> Dict:
        """Populated representation matching LogResponse."""
        return {
            "id": log.id,
            "user_id": log.user_id,
            "log_date": log.log_date,
            "notes": log.notes,
            "created_at": log.created_at,
            "ingredients": [
                {
                    "ingredient_id": li.ingredient_id,
                    "name": li.ingredient.name,
                    "raw_text": li.raw_text,
                    "match_confidence": (
                        float(li.match_confidence) if li.match_confidence is not None else None
                    ),
                }
                for li in log.log_ingredients
            ],
            "symptoms": sorted(
                (
                    {
                        "symptom_id": ls.symptom_id,
                        "name": ls.symptom.name,
                        "severity": ls.severity,
                    }
                    for ls in log.log_symptoms
                ),
                key=lambda s: s["symptom_id"],
            ),
        }


log_service = LogService()
