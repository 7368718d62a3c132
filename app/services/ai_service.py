"""
Claude AI integration for ingredient normalization and the chat assistant.

This service provides two capabilities:
1. Mapping unmatched ingredient tokens onto the canonical ingredient list
2. A general chat proxy for the in-app assistant
"""

import json
import re
import asyncio
import random
import logging
from functools import lru_cache, wraps
from typing import Optional

from anthropic import Anthropic
import anthropic
import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from app.config import settings
from app.services.ai_schemas import IngredientMatchesSchema
from app.services.prompts import (
    CHAT_SYSTEM_PROMPT,
    INGREDIENT_NORMALIZATION_SYSTEM_PROMPT,
    INGREDIENT_NORMALIZATION_USER_TEMPLATE,
)


logger = logging.getLogger(__name__)


def _strip_markdown_json(text: str) -> str:
    """Strip markdown code block wrappers from JSON text."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    return text


def _fix_trailing_commas(text: str) -> str:
    """Fix trailing commas in JSON (common LLM error)."""
    text = re.sub(r",\s*}", "}", text)
    text = re.sub(r",\s*]", "]", text)
    return text


def _response_text(response) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return "".join(block.text for block in response.content if hasattr(block, "text"))


def retry_on_connection_error(max_attempts=3, base_delay=1.0):
    """
    Retry decorator for API calls that may fail due to transient network issues.

    Args:
        max_attempts: Maximum retry attempts (default 3)
        base_delay: Base delay in seconds for exponential backoff (default 1.0)
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except anthropic.APIConnectionError as e:
                    last_exception = e

                    if attempt < max_attempts - 1:
                        # Exponential backoff with +/-10% jitter
                        delay = base_delay * (2**attempt)
                        sleep_time = delay + delay * 0.1 * (2 * random.random() - 1)

                        logger.warning(
                            "Connection error on attempt %d/%d, retrying in %.1fs...",
                            attempt + 1,
                            max_attempts,
                            sleep_time,
                        )
                        await asyncio.sleep(sleep_time)
                    else:
                        logger.error("All %d attempts failed", max_attempts)

            raise ServiceUnavailableError(
                "AI service temporarily unavailable after retries"
            ) from last_exception

        return wrapper

    return decorator


class ClaudeService:
    """Centralized Claude API integration for all AI features."""

    def __init__(self, client: Optional[Anthropic] = None):
        if client is None:
            timeout = httpx.Timeout(
                timeout=settings.anthropic_timeout,
                connect=settings.anthropic_connect_timeout,
            )
            client = Anthropic(api_key=settings.anthropic_api_key, timeout=timeout)
        self.client = client
        self.model = settings.llm_model

    # =========================================================================
    # SCHEMA VALIDATION + CONVERSATIONAL RETRY
    # =========================================================================

    def _call_with_schema_retry(
        self,
        messages: list[dict],
        schema_class: type[BaseModel],
        request_params: dict,
        max_retries: int = 2,
        prefill: str | None = "{",
    ) -> tuple[dict, str]:
        """
        Call Claude API with JSON schema validation and conversational retry.

        On schema failure: appends the bad response + error feedback to messages,
        re-calls with full conversation context so the LLM can self-correct.

        Args:
            messages: The messages list (will be mutated on retry)
            schema_class: Pydantic model class to validate against
            request_params: Dict of params for client.messages.create
                            (model, max_tokens, system, etc.)
                            NOTE: do NOT include 'messages' - they're passed separately
            max_retries: Number of retry attempts after initial call (default 2, so 3 total)
            prefill: Assistant prefill string, or None for no prefill

        Returns:
            (validated_dict, raw_response_text) tuple

        Raises:
            ValueError: If all attempts fail schema validation
        """
        adapter = TypeAdapter(schema_class)
        error_msg = ""

        for attempt in range(1 + max_retries):
            call_messages = list(messages)
            if prefill:
                call_messages.append({"role": "assistant", "content": prefill})

            response = self.client.messages.create(
                messages=call_messages,
                **request_params,
            )
            response_text = _response_text(response)

            if not response_text:
                if attempt < max_retries:
                    messages.append({"role": "assistant", "content": "(empty response)"})
                    messages.append(
                        {
                            "role": "user",
                            "content": "Your response contained no text. Please respond with valid JSON.",
                        }
                    )
                    continue
                raise ValueError("No text content in AI response after retries")

            raw_text = response_text.strip()
            json_str = (prefill or "") + raw_text
            json_str = _fix_trailing_commas(_strip_markdown_json(json_str))

            try:
                validated = adapter.validate_python(json.loads(json_str))
                return validated.model_dump(), raw_text
            except (json.JSONDecodeError, ValidationError) as e:
                error_msg = str(e)
                logger.warning(
                    "AI response schema validation failed (attempt %d/%d) for %s: %s",
                    attempt + 1,
                    1 + max_retries,
                    schema_class.__name__,
                    error_msg,
                )

                if attempt < max_retries:
                    messages.append(
                        {"role": "assistant", "content": (prefill or "") + raw_text}
                    )
                    messages.append(
                        {
                            "role": "user",
                            "content": (
                                f"Your response had a schema error:\n{error_msg}\n\n"
                                f"Please fix and return valid JSON matching the required schema."
                            ),
                        }
                    )

        raise ValueError(
            f"AI response failed schema validation after {1 + max_retries} attempts: {error_msg}"
        )

    # =========================================================================
    # INGREDIENT NORMALIZATION
    # =========================================================================

    @retry_on_connection_error()
    async def match_ingredients(
        self, tokens: list[str], canonical_names: list[str]
    ) -> list[dict]:
        """
        Ask Claude to map unmatched tokens onto canonical ingredient names.

        Args:
            tokens: Phrases the deterministic and fuzzy tiers could not resolve
            canonical_names: Allowed ingredient names

        Returns:
            [{"token": "mozzarella", "ingredient": "Dairy", "confidence": 0.9}, ...]
            Names outside canonical_names are dropped.

        Raises:
            ServiceUnavailableError: AI service temporarily down
            RateLimitError: Too many requests
            ValueError: Invalid response or request error
        """
        if not tokens or not canonical_names:
            return []

        messages = [
            {
                "role": "user",
                "content": INGREDIENT_NORMALIZATION_USER_TEMPLATE.format(
                    canonical_list="\n".join(f"- {name}" for name in canonical_names),
                    tokens="\n".join(f"- {token}" for token in tokens),
                ),
            }
        ]

        try:
            validated, _raw_text = self._call_with_schema_retry(
                messages=messages,
                schema_class=IngredientMatchesSchema,
                request_params={
                    "model": self.model,
                    "max_tokens": 512,
                    "system": INGREDIENT_NORMALIZATION_SYSTEM_PROMPT,
                },
            )
        except anthropic.RateLimitError as e:
            raise RateLimitError("Too many requests, please try again in 1 minute") from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                raise ServiceUnavailableError("AI service error") from e
            raise ValueError(f"Request error: {e.message}") from e

        allowed = set(canonical_names)
        matches = [m for m in validated["matches"] if m["ingredient"] in allowed]
        dropped = len(validated["matches"]) - len(matches)
        if dropped:
            logger.info("Discarded %d LLM matches outside the canonical list", dropped)
        return matches

    # =========================================================================
    # CHAT
    # =========================================================================

    @retry_on_connection_error()
    async def chat(self, messages: list[dict], model: Optional[str] = None) -> dict:
        """
        Relay a conversation to Claude and return the assistant reply.

        System messages are merged into the system prompt, as the Messages API
        only accepts user/assistant turns.

        Returns:
            {"content": "...", "model": "..."}
        """
        system_parts = [CHAT_SYSTEM_PROMPT]
        turns = []
        for message in messages:
            if message["role"] == "system":
                system_parts.append(message["content"])
            else:
                turns.append({"role": message["role"], "content": message["content"]})

        if not turns:
            raise ValueError("Conversation must include at least one user message")

        try:
            response = self.client.messages.create(
                model=model or self.model,
                max_tokens=1024,
                system="\n\n".join(system_parts),
                messages=turns,
            )
        except anthropic.RateLimitError as e:
            raise RateLimitError("Too many requests, please try again in 1 minute") from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                raise ServiceUnavailableError("AI service error") from e
            raise ValueError(f"Request error: {e.message}") from e

        return {"content": _response_text(response), "model": response.model}


@lru_cache(maxsize=1)
def get_claude_service() -> Optional[ClaudeService]:
    """FastAPI dependency: the shared Claude client, or None when no API key is configured."""
    if not settings.anthropic_api_key:
        logger.info("ANTHROPIC_API_KEY not set; AI features disabled")
        return None
    return ClaudeService()


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class ServiceUnavailableError(Exception):
    """AI service is temporarily unavailable."""

    pass


class RateLimitError(Exception):
    """Rate limit exceeded."""

    pass
