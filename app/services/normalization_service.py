"""Map free-text ingredient phrases onto canonical ingredients."""
import logging
from difflib import SequenceMatcher
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models import Ingredient, IngredientAlias
from app.services.ai_service import ClaudeService, RateLimitError, ServiceUnavailableError
from app.services.text_processing import (
    IngredientPhrase,
    contains_letter,
    extract_phrases,
    singularize_phrase,
)


class NormalizationError(Exception):
    """Raised when raw text cannot be normalized. `code` identifies the reason."""

    EMPTY_INPUT = "EMPTY_INPUT"
    INVALID_INPUT = "INVALID_INPUT"
    NO_INGREDIENTS = "NO_INGREDIENTS"
    INSUFFICIENT_CONFIDENCE = "INSUFFICIENT_CONFIDENCE"

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class IngredientNormalizationService:
    """
    Three matching tiers, cheapest first:

    - deterministic: exact name/alias match, optionally after singularizing
    - fuzzy: difflib similarity, boosted when one name contains the other's words
    - llm: Claude maps leftover phrases onto the canonical list

    Each phrase only moves to the next tier when the previous one found nothing.
    """

    MAX_INPUT_LENGTH = 100
    EXACT_CONFIDENCE = 1.0
    SINGULAR_CONFIDENCE = 0.95
    SUBSTRING_BOOST = 0.2
    FUZZY_CAP = 0.99
    FUZZY_TOP_N = 3
    LLM_MIN_CONFIDENCE = 0.5

    def __init__(
        self,
        db: Session,
        llm_service: Optional[ClaudeService] = None,
        logger: Optional[logging.Logger] = None,
        min_confidence: Optional[float] = None,
        max_results: Optional[int] = None,
        fuzzy_threshold: Optional[float] = None,
    ):
        self.db = db
        self.llm_service = llm_service
        self.logger = logger or logging.getLogger(__name__)
        self.min_confidence = (
            settings.normalization_min_confidence if min_confidence is None else min_confidence
        )
        self.max_results = (
            settings.normalization_max_results if max_results is None else max_results
        )
        self.fuzzy_threshold = (
            settings.normalization_fuzzy_threshold if fuzzy_threshold is None else fuzzy_threshold
        )

    # =========================================================================
    # Public API
    # =========================================================================

    @classmethod
    def validate_input(cls, raw_text: str) -> str:
        """Trim and check raw text; returns the trimmed text."""
        text = (raw_text or "").strip()
        if not text:
            raise NormalizationError(NormalizationError.EMPTY_INPUT, "Ingredient text is required")
        if len(text) > cls.MAX_INPUT_LENGTH:
            raise NormalizationError(
                NormalizationError.INVALID_INPUT,
                f"Ingredient text must be at most {cls.MAX_INPUT_LENGTH} characters",
            )
        if not contains_letter(text):
            raise NormalizationError(
                NormalizationError.INVALID_INPUT, "Ingredient text must contain letters"
            )
        return text

    async def normalize(self, raw_text: str) -> List[Dict]:
        """
        Resolve raw text to canonical ingredient matches.

        Returns:
            [{"ingredient_id", "name", "match_confidence", "match_method"}, ...]
            sorted by confidence, at most max_results long.

        Raises:
            NormalizationError: invalid input, nothing ingredient-like, or no match
        """
        text = self.validate_input(raw_text)
        phrases = extract_phrases(text)
        if not phrases:
            raise NormalizationError(
                NormalizationError.NO_INGREDIENTS, "No ingredients found in text"
            )

        catalog = self.load_catalog()
        matches: List[Dict] = []
        unmatched: List[IngredientPhrase] = []

        for phrase in phrases:
            exact = self.match_deterministic(phrase, catalog)
            if exact:
                matches.append(exact)
                continue
            fuzzy = self.match_fuzzy(phrase, catalog)
            if fuzzy:
                matches.extend(fuzzy)
            else:
                unmatched.append(phrase)

        if unmatched:
            matches.extend(await self.match_with_llm(unmatched, catalog))

        results = self.merge_matches(matches)
        self.logger.info(
            "Normalized %r: %d phrases, %d matches (%d sent to LLM)",
            text,
            len(phrases),
            len(results),
            len(unmatched) if self.llm_service else 0,
        )

        if not results:
            raise NormalizationError(
                NormalizationError.INSUFFICIENT_CONFIDENCE,
                "Could not match any ingredient with sufficient confidence",
            )
        return results

    # =========================================================================
    # Tiers
    # =========================================================================

    def load_catalog(self) -> List[Dict]:
        """Canonical names and aliases as lookup entries."""
        entries = [
            {"ingredient_id": i.id, "name": i.name, "key": i.normalized_name}
            for i in self.db.query(Ingredient).all()
        ]
        alias_rows = (
            self.db.query(IngredientAlias.normalized_alias, Ingredient.id, Ingredient.name)
            .join(Ingredient, Ingredient.id == IngredientAlias.ingredient_id)
            .all()
        )
        entries.extend(
            {"ingredient_id": ingredient_id, "name": name, "key": alias}
            for alias, ingredient_id, name in alias_rows
        )
        return entries

    def match_deterministic(
        self, phrase: IngredientPhrase, catalog: List[Dict]
    ) -> Optional[Dict]:
        by_key = {entry["key"]: entry for entry in catalog}
        by_singular = {singularize_phrase(entry["key"]): entry for entry in catalog}

        for candidate in phrase.candidates():
            entry = by_key.get(candidate)
            if entry:
                return self._match(entry, self.EXACT_CONFIDENCE, "deterministic")
        for candidate in phrase.candidates():
            entry = by_singular.get(singularize_phrase(candidate))
            if entry:
                return self._match(entry, self.SINGULAR_CONFIDENCE, "deterministic")
        return None

    def match_fuzzy(self, phrase: IngredientPhrase, catalog: List[Dict]) -> List[Dict]:
        """
        Top matches by SequenceMatcher ratio at or above the fuzzy threshold.

        Only names sharing the phrase's first letter are compared, so short
        names cannot match unrelated words ("steak" vs "tea"). The boost
        applies when one name's words all appear whole in the other's
        ("cheddar" in "cheddar cheese", not "egg" in "eggplant").
        """
        target = singularize_phrase(phrase.core or phrase.text)
        best: Dict[int, Dict] = {}

        for entry in catalog:
            key = singularize_phrase(entry["key"])
            if not key or key[0] != target[0]:
                continue
            score = SequenceMatcher(None, target, key).ratio()
            if self._shares_whole_words(target, key):
                score += self.SUBSTRING_BOOST
            score = min(score, self.FUZZY_CAP)
            if score < self.fuzzy_threshold:
                continue
            current = best.get(entry["ingredient_id"])
            if current is None or score > current["match_confidence"]:
                best[entry["ingredient_id"]] = self._match(entry, score, "fuzzy")

        ranked = sorted(best.values(), key=lambda m: (-m["match_confidence"], m["name"]))
        return ranked[: self.FUZZY_TOP_N]

    async def match_with_llm(
        self, phrases: List[IngredientPhrase], catalog: List[Dict]
    ) -> List[Dict]:
        """LLM fallback. Failures degrade to no matches."""
        if self.llm_service is None or not settings.normalization_llm_enabled:
            return []

        names = {}
        for entry in catalog:
            names.setdefault(entry["name"], entry)
        tokens = [phrase.text for phrase in phrases]

        try:
            llm_matches = await self.llm_service.match_ingredients(tokens, sorted(names))
        except (ServiceUnavailableError, RateLimitError, ValueError) as e:
            self.logger.warning("LLM normalization failed for %s: %s", tokens, e)
            return []

        results = []
        for item in llm_matches:
            entry = names.get(item["ingredient"])
            if entry is None:
                continue
            confidence = min(max(float(item["confidence"]), self.LLM_MIN_CONFIDENCE), 1.0)
            results.append(self._match(entry, confidence, "llm"))
        return results

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _shares_whole_words(a: str, b: str) -> bool:
        shorter, longer = sorted((a.split(), b.split()), key=len)
        return set(shorter) <= set(longer)

    @staticmethod
    def _match(entry: Dict, confidence: float, method: str) -> Dict:
        return {
            "ingredient_id": entry["ingredient_id"],
            "name": entry["name"],
            "match_confidence": round(confidence, 3),
            "match_method": method,
        }

    def merge_matches(self, matches: List[Dict]) -> List[Dict]:
        """Keep the best match per ingredient, drop weak ones, sort and cap."""
        best: Dict[int, Dict] = {}
        for match in matches:
            current = best.get(match["ingredient_id"])
            if current is None or match["match_confidence"] > current["match_confidence"]:
                best[match["ingredient_id"]] = match

        kept = [m for m in best.values() if m["match_confidence"] >= self.min_confidence]
        kept.sort(key=lambda m: (-m["match_confidence"], m["name"]))
        return kept[: self.max_results]
