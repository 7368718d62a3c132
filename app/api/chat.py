"""Chat assistant proxy."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from app.errors import RateLimitExceededError, ServiceUnavailableAPIError, ValidationError
from app.models.user import User
from app.schemas import ChatRequest
from app.services.ai_service import (
    ClaudeService,
    RateLimitError,
    ServiceUnavailableError,
    get_claude_service,
)
from app.services.auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("")
async def chat(
    payload: ChatRequest,
    user: User = Depends(get_current_user),
    claude_service: Optional[ClaudeService] = Depends(get_claude_service),
):
    """Relay the conversation to Claude and return the assistant's reply."""
    if claude_service is None:
        raise ServiceUnavailableAPIError("AI assistant is not configured")

    try:
        reply = await claude_service.chat(
            [m.model_dump() for m in payload.messages], model=payload.model
        )
    except RateLimitError:
        raise RateLimitExceededError("Too many requests, please try again in 1 minute")
    except ServiceUnavailableError:
        logger.warning("Chat request failed: AI service unavailable (user %s)", user.id)
        raise ServiceUnavailableAPIError("AI service temporarily unavailable")
    except ValueError as e:
        raise ValidationError(str(e))

    return {
        "data": {
            "message": {"role": "assistant", "content": reply["content"]},
            "model": reply["model"],
        }
    }
