"""
Pydantic models for validating structured JSON responses from Claude AI.

Each schema corresponds to one AI method's expected response format.
Used by _call_with_schema_retry() in ai_service.py for validation + retry.
"""

from pydantic import BaseModel, Field


# --- Ingredient Normalization (match_ingredients) ---


class IngredientMatchSchema(BaseModel):
    token: str
    ingredient: str  # Must be one of the canonical names offered in the prompt
    confidence: float = Field(ge=0, le=1)


class IngredientMatchesSchema(BaseModel):
    matches: list[IngredientMatchSchema] = []
