"""
LLM service for handling OpenAI API interactions.
"""
from typing import Any, Optional
import os
import asyncio
import logging
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage
from dotenv import load_dotenv

from app.middleware.error_handling import ModelUnavailable

load_dotenv()

logger = logging.getLogger(__name__)


def _content_to_text(content: Any) -> str:
    """Flatten message content; some providers return a list of content parts."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return "" if content is None else str(content)


class LLMService:
    """Single-call text completion against the configured chat model."""

    def __init__(self):
        """Initialize LLM service."""
        self.api_key = os.getenv('OPENAI_API_KEY')
        self.model = os.getenv('OPENAI_MODEL', 'gpt-4.1-mini')
        self.temperature = float(os.getenv('LLM_TEMPERATURE', '0.7'))
        self.timeout = float(os.getenv('LLM_TIMEOUT_SECONDS', '60'))

        if not self.api_key:
            raise ValueError("OPENAI_API_KEY environment variable is required")

    def get_chat_model(self) -> ChatOpenAI:
        """Get OpenAI chat model instance. Retries are left to the caller."""
        return ChatOpenAI(
            model=self.model,
            temperature=self.temperature,
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=0
        )

    async def generate(self, prompt: str) -> str:
        """
        Send one prompt and return the raw reply text.

        Raises:
            ModelUnavailable: on any transport/provider error or timeout
        """
        chat_model = self.get_chat_model()
        try:
            response = await asyncio.wait_for(
                chat_model.ainvoke([HumanMessage(content=prompt)]),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"LLM call timed out after {self.timeout}s (model={self.model})")
            raise ModelUnavailable("Model call timed out", original_error=e) from e
        except Exception as e:
            logger.error(f"LLM call failed (model={self.model}): {type(e).__name__}: {e}")
            raise ModelUnavailable("Model call failed", original_error=e) from e

        text = _content_to_text(getattr(response, "content", response))
        logger.debug(f"LLM reply received ({len(text)} chars)")
        return text


# Singleton instance
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get or create the LLM service singleton."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
