"""
Request and response models for the JSON API.

Request models validate input at the edge; response models document the
envelopes returned by each router.
"""

from datetime import date, datetime
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Logs
# =============================================================================


class SymptomEntry(BaseModel):
    symptom_id: int = Field(ge=1)
    severity: int = Field(ge=1, le=5)


class IngredientRef(BaseModel):
    """An ingredient picked from the canonical list rather than typed."""

    ingredient_id: int = Field(ge=1)


class LogCreate(BaseModel):
    log_date: date
    notes: Optional[str] = Field(default=None, max_length=2000)
    ingredients: List[Union[str, IngredientRef]] = Field(default_factory=list, max_length=50)
    symptoms: List[SymptomEntry] = Field(default_factory=list, max_length=20)

    @field_validator("ingredients")
    @classmethod
    def ingredients_not_too_long(
        cls, value: List[Union[str, IngredientRef]]
    ) -> List[Union[str, IngredientRef]]:
        for item in value:
            if isinstance(item, str) and len(item.strip()) > 100:
                raise ValueError("Ingredient names must be at most 100 characters")
        return value

    @field_validator("symptoms")
    @classmethod
    def symptoms_unique(cls, value: List[SymptomEntry]) -> List[SymptomEntry]:
        ids = [entry.symptom_id for entry in value]
        if len(ids) != len(set(ids)):
            raise ValueError("Each symptom may only be recorded once per log")
        return value


class LogIngredientResponse(BaseModel):
    ingredient_id: int
    name: str
    raw_text: Optional[str] = None
    match_confidence: Optional[float] = None


class LogSymptomResponse(BaseModel):
    symptom_id: int
    name: str
    severity: int


class LogResponse(BaseModel):
    id: UUID
    user_id: UUID
    log_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    ingredients: List[LogIngredientResponse]
    symptoms: List[LogSymptomResponse]


class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class LogEnvelope(BaseModel):
    data: LogResponse


class LogListEnvelope(BaseModel):
    data: List[LogResponse]
    pagination: Pagination


# =============================================================================
# Trigger analysis
# =============================================================================


class ConfidenceInterval(BaseModel):
    lower: float
    upper: float
    width: float


class TriggerResult(BaseModel):
    ingredient_id: int
    name: str
    consumption_count: int
    avg_severity_when_present: float
    baseline_avg_severity: float
    trigger_score: float
    confidence_interval: ConfidenceInterval


class CorrelationRow(BaseModel):
    log_id: UUID
    log_date: date
    ingredient_id: int
    ingredient_name: str
    symptom_id: int
    symptom_name: str
    severity: int


class DateRange(BaseModel):
    start: date
    end: date


class TriggerAnalysisMeta(BaseModel):
    date_range: DateRange
    total_logs: int
    min_consumption_threshold: int
    min_logs_threshold: int
    confidence_level: float


class AnalysisPeriod(BaseModel):
    start_date: date
    end_date: date
    total_logs: int


class TriggerAnalysisResponse(BaseModel):
    triggers: List[TriggerResult]
    correlations: Optional[List[CorrelationRow]] = None
    analysis_period: AnalysisPeriod
    meta: TriggerAnalysisMeta


# =============================================================================
# Ingredients, symptoms, normalization
# =============================================================================


class CatalogItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class IngredientListResponse(BaseModel):
    data: List[CatalogItem]
    source: Literal["canonical"] = "canonical"


class SymptomListResponse(BaseModel):
    data: List[CatalogItem]


class NormalizeRequest(BaseModel):
    # Length and content rules are enforced after trimming by the normalizer
    raw_text: str = Field(max_length=1000)


class NormalizedMatch(BaseModel):
    ingredient_id: int
    name: str
    match_confidence: float = Field(ge=0.0, le=1.0)
    match_method: Literal["deterministic", "fuzzy", "llm"]


class NormalizeResponse(BaseModel):
    data: List[NormalizedMatch]
    raw_text: str


# =============================================================================
# Chat
# =============================================================================


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(min_length=1, max_length=10000)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1, max_length=50)
    model: Optional[str] = Field(default=None, max_length=100)


# =============================================================================
# Auth
# =============================================================================


class Credentials(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return value


class RegisterRequest(Credentials):
    @field_validator("password")
    @classmethod
    def password_policy(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        if not any(c.isalpha() for c in value) or not any(c.isdigit() for c in value):
            raise ValueError("Password must contain at least one letter and one digit")
        return value


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    is_admin: bool
