"""
Unit tests for IngredientNormalizationService.

Tests the three matching tiers and how they combine:
- Deterministic (exact name, alias, singular form)
- Fuzzy (difflib similarity with whole-word boost)
- LLM fallback (mocked) and its failure handling
- Input validation error codes
"""

import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from app.seed_data import seed_reference_data
from app.services.ai_service import RateLimitError, ServiceUnavailableError
from app.services.normalization_service import (
    IngredientNormalizationService,
    NormalizationError,
)
from app.services.text_processing import IngredientPhrase
from tests.factories import create_ingredient
from tests.fixtures.mocks import MockClaudeService


@pytest.fixture
def catalog(db: Session):
    """A small canonical ingredient list."""
    return {
        "Tomatoes": create_ingredient(db, "Tomatoes"),
        "Chickpeas": create_ingredient(db, "Chickpeas", aliases=["garbanzo beans"]),
        "Cheddar Cheese": create_ingredient(db, "Cheddar Cheese"),
        "Milk": create_ingredient(db, "Milk", aliases=["whole milk"]),
        "Bread": create_ingredient(db, "Bread"),
    }


class TestDeterministicMatching:
    """Tests for exact and singular matches."""

    @pytest.mark.asyncio
    async def test_exact_name(self, db: Session, catalog):
        service = IngredientNormalizationService(db)

        results = await service.normalize("Tomatoes")

        assert results == [
            {
                "ingredient_id": catalog["Tomatoes"].id,
                "name": "Tomatoes",
                "match_confidence": 1.0,
                "match_method": "deterministic",
            }
        ]

    @pytest.mark.asyncio
    async def test_alias(self, db: Session, catalog):
        service = IngredientNormalizationService(db)

        results = await service.normalize("garbanzo beans")

        assert results[0]["name"] == "Chickpeas"
        assert results[0]["match_confidence"] == 1.0

    @pytest.mark.asyncio
    async def test_alias_preferred_over_modifier_stripping(self, db: Session, catalog):
        """'whole' is a modifier, but the full phrase is an alias and wins first."""
        service = IngredientNormalizationService(db)

        results = await service.normalize("whole milk")

        assert [r["name"] for r in results] == ["Milk"]
        assert results[0]["match_method"] == "deterministic"

    @pytest.mark.asyncio
    async def test_singular_form(self, db: Session, catalog):
        service = IngredientNormalizationService(db)

        results = await service.normalize("tomato")

        assert results[0]["name"] == "Tomatoes"
        assert results[0]["match_confidence"] == 0.95

    @pytest.mark.asyncio
    async def test_multiple_phrases(self, db: Session, catalog):
        service = IngredientNormalizationService(db)

        results = await service.normalize("2 slices of bread, tomatoes and milk")

        assert sorted(r["name"] for r in results) == ["Bread", "Milk", "Tomatoes"]
        assert all(r["match_confidence"] == 1.0 for r in results)

    @pytest.mark.asyncio
    async def test_best_match_per_ingredient_kept(self, db: Session, catalog):
        """'tomatoes' (1.0) and 'tomato' (0.95) collapse to one result."""
        service = IngredientNormalizationService(db)

        results = await service.normalize("tomatoes, tomato")

        assert len(results) == 1
        assert results[0]["match_confidence"] == 1.0


class TestFuzzyMatching:
    """Tests for similarity matching."""

    @pytest.mark.asyncio
    async def test_partial_name(self, db: Session, catalog):
        """'cheddar' is a whole word of 'cheddar cheese': 2*7/21 plus the boost."""
        service = IngredientNormalizationService(db)

        results = await service.normalize("cheddar")

        assert results[0]["name"] == "Cheddar Cheese"
        assert results[0]["match_method"] == "fuzzy"
        assert results[0]["match_confidence"] == pytest.approx(0.867, abs=1e-3)

    def test_fuzzy_confidence_capped(self, db: Session, catalog):
        service = IngredientNormalizationService(db)
        phrase = IngredientPhrase(text="cheddar cheeses", core="cheddar cheeses")

        matches = service.match_fuzzy(phrase, service.load_catalog())

        assert matches
        assert all(m["match_confidence"] <= 0.99 for m in matches)

    def test_fuzzy_threshold(self, db: Session, catalog):
        service = IngredientNormalizationService(db, fuzzy_threshold=0.95)
        phrase = IngredientPhrase(text="cheddar", core="cheddar")

        assert service.match_fuzzy(phrase, service.load_catalog()) == []

    def test_misspelling_still_matches(self, db: Session, catalog):
        service = IngredientNormalizationService(db)
        phrase = IngredientPhrase(text="tomatoe", core="tomatoe")

        (match,) = service.match_fuzzy(phrase, service.load_catalog())

        assert match["name"] == "Tomatoes"
        assert match["match_confidence"] == pytest.approx(0.923, abs=1e-3)

    @pytest.mark.parametrize(
        "text, wrong_match",
        [
            ("steak", "Caffeine"),  # contains the alias "tea"
            ("rice", "Garlic"),
            ("potato", "Tomatoes"),
            ("eggplant", "Eggs"),  # starts with "egg"
        ],
    )
    def test_unrelated_foods_not_matched(self, db: Session, text, wrong_match):
        seed_reference_data(db)
        service = IngredientNormalizationService(db)
        phrase = IngredientPhrase(text=text, core=text)

        matches = service.match_fuzzy(phrase, service.load_catalog())

        assert wrong_match not in [m["name"] for m in matches]
        assert matches == []

    @pytest.mark.asyncio
    async def test_unmatched_food_reaches_llm(self, db: Session):
        seed_reference_data(db)
        llm = MockClaudeService()
        llm.set_match_ingredients_response([])
        service = IngredientNormalizationService(db, llm_service=llm)

        with pytest.raises(NormalizationError):
            await service.normalize("steak")

        assert llm.calls["match_ingredients"][0]["kwargs"]["tokens"] == ["steak"]

    def test_boost_requires_whole_words(self):
        shares = IngredientNormalizationService._shares_whole_words

        assert shares("cheddar", "cheddar cheese")
        assert not shares("egg", "eggplant")
        assert not shares("tea", "steak")

    @pytest.mark.asyncio
    async def test_min_confidence_filters_fuzzy(self, db: Session, catalog):
        service = IngredientNormalizationService(db, min_confidence=0.9)

        with pytest.raises(NormalizationError) as exc_info:
            await service.normalize("cheddar")

        assert exc_info.value.code == NormalizationError.INSUFFICIENT_CONFIDENCE


class TestLLMFallback:
    """Tests for the LLM tier using MockClaudeService."""

    @pytest.mark.asyncio
    async def test_unmatched_phrase_sent_to_llm(self, db: Session, catalog):
        llm = MockClaudeService()
        llm.set_match_ingredients_response(
            [{"token": "marinara", "ingredient": "Tomatoes", "confidence": 0.8}]
        )
        service = IngredientNormalizationService(db, llm_service=llm)

        results = await service.normalize("marinara")

        assert results == [
            {
                "ingredient_id": catalog["Tomatoes"].id,
                "name": "Tomatoes",
                "match_confidence": 0.8,
                "match_method": "llm",
            }
        ]
        call = llm.calls["match_ingredients"][0]["kwargs"]
        assert call["tokens"] == ["marinara"]
        assert "Tomatoes" in call["canonical_names"]

    @pytest.mark.asyncio
    async def test_llm_not_called_for_exact_matches(self, db: Session, catalog):
        llm = MockClaudeService()
        service = IngredientNormalizationService(db, llm_service=llm)

        await service.normalize("tomatoes")

        assert "match_ingredients" not in llm.calls

    @pytest.mark.asyncio
    async def test_llm_confidence_clamped(self, db: Session, catalog):
        llm = MockClaudeService()
        llm.set_match_ingredients_response(
            [{"token": "marinara", "ingredient": "Tomatoes", "confidence": 0.1}]
        )
        service = IngredientNormalizationService(db, llm_service=llm)

        results = await service.normalize("marinara")

        assert results[0]["match_confidence"] == 0.5

    @pytest.mark.asyncio
    async def test_llm_unknown_ingredient_ignored(self, db: Session, catalog):
        llm = MockClaudeService()
        llm.set_match_ingredients_response(
            [{"token": "marinara", "ingredient": "Basil", "confidence": 0.9}]
        )
        service = IngredientNormalizationService(db, llm_service=llm)

        with pytest.raises(NormalizationError) as exc_info:
            await service.normalize("marinara")

        assert exc_info.value.code == NormalizationError.INSUFFICIENT_CONFIDENCE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ServiceUnavailableError("down"), RateLimitError("slow down"), ValueError("bad")],
    )
    async def test_llm_failure_degrades(self, db: Session, catalog, error):
        llm = MockClaudeService()
        llm.set_error(error)
        logger = MagicMock(spec=logging.Logger)
        service = IngredientNormalizationService(db, llm_service=llm, logger=logger)

        with pytest.raises(NormalizationError) as exc_info:
            await service.normalize("marinara")

        assert exc_info.value.code == NormalizationError.INSUFFICIENT_CONFIDENCE
        assert logger.warning.called

    @pytest.mark.asyncio
    async def test_no_llm_configured(self, db: Session, catalog):
        service = IngredientNormalizationService(db, llm_service=None)

        with pytest.raises(NormalizationError):
            await service.normalize("marinara")


class TestValidation:
    """Tests for input validation error codes."""

    @pytest.mark.parametrize("raw_text", ["", "   ", None])
    def test_empty(self, raw_text):
        with pytest.raises(NormalizationError) as exc_info:
            IngredientNormalizationService.validate_input(raw_text)
        assert exc_info.value.code == NormalizationError.EMPTY_INPUT

    def test_too_long(self):
        with pytest.raises(NormalizationError) as exc_info:
            IngredientNormalizationService.validate_input("a" * 101)
        assert exc_info.value.code == NormalizationError.INVALID_INPUT

    def test_no_letters(self):
        with pytest.raises(NormalizationError) as exc_info:
            IngredientNormalizationService.validate_input("12345 !!")
        assert exc_info.value.code == NormalizationError.INVALID_INPUT

    def test_trims(self):
        assert IngredientNormalizationService.validate_input("  milk ") == "milk"

    @pytest.mark.asyncio
    async def test_no_ingredients(self, db: Session, catalog):
        service = IngredientNormalizationService(db)

        with pytest.raises(NormalizationError) as exc_info:
            await service.normalize("2 cups of")

        assert exc_info.value.code == NormalizationError.NO_INGREDIENTS


class TestResultLimits:
    @pytest.mark.asyncio
    async def test_max_results(self, db: Session, catalog):
        service = IngredientNormalizationService(db, max_results=2)

        results = await service.normalize("bread, tomatoes, milk")

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_sorted_by_confidence(self, db: Session, catalog):
        service = IngredientNormalizationService(db)

        results = await service.normalize("tomato, bread")

        confidences = [r["match_confidence"] for r in results]
        assert confidences == sorted(confidences, reverse=True)
        assert results[0]["name"] == "Bread"
