"""
Sentiment Analysis Clients
==========================

Clients for the external text-analysis collaborator.
Supports OpenAI (default) and Claude (Anthropic).

Contract:
    request  {review_id, title, content}
    response {sentiment, confidence, summary}  or  SentimentServiceError

Errors are classified for the retry policy:
    transient : timeouts, connection errors, HTTP 5xx, HTTP 429
    permanent : other HTTP 4xx, malformed or unparsable responses
"""

import os
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from enum import Enum

import anthropic
import openai

from ..reviews.review_models import Sentiment, SentimentResult

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported sentiment providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class SentimentServiceError(Exception):
    """Failure from the analysis collaborator."""

    def __init__(self, message: str, transient: bool, status_code: Optional[int] = None):
        self.message = message
        self.transient = transient
        self.status_code = status_code
        super().__init__(message)


def is_transient_status(status_code: int) -> bool:
    """5xx and rate limiting are worth retrying; other 4xx are not."""
    return status_code >= 500 or status_code == 429


SENTIMENT_SYSTEM = (
    "You are a helpful assistant that analyzes sentiment of event reviews. "
    "Always respond with valid JSON only, no other text."
)

SENTIMENT_PROMPT = """Analyze the sentiment of this event review and provide a brief summary.

Title: {title}
Content: {content}

Please respond with a JSON object containing:
1. "sentiment": one of "positive", "negative", or "neutral"
2. "confidence": a decimal between 0 and 1 indicating confidence level
3. "summary": a brief 2-3 sentence summary of the key points

Only respond with valid JSON, no other text."""


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
    return content.strip()


def parse_sentiment_payload(content: Optional[str]) -> SentimentResult:
    """
    Parse and validate the collaborator's JSON answer.

    Raises:
        SentimentServiceError: permanent, for anything that is not a
            well-formed {sentiment, confidence, summary} object.
    """
    if not content:
        raise SentimentServiceError("Empty sentiment response", transient=False)

    try:
        data = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}\nContent: {content[:500]}")
        raise SentimentServiceError(f"Response is not valid JSON: {e}", transient=False)

    if not isinstance(data, dict):
        raise SentimentServiceError("Response is not a JSON object", transient=False)

    try:
        sentiment = Sentiment(str(data.get("sentiment", "")).lower())
    except ValueError:
        raise SentimentServiceError(f"Unknown sentiment label: {data.get('sentiment')!r}", transient=False)
    if sentiment is Sentiment.UNSET:
        raise SentimentServiceError("Sentiment label 'unset' is not a result", transient=False)

    try:
        confidence = float(data.get("confidence"))
    except (TypeError, ValueError):
        raise SentimentServiceError(f"Invalid confidence: {data.get('confidence')!r}", transient=False)
    if not 0.0 <= confidence <= 1.0:
        raise SentimentServiceError(f"Confidence out of range: {confidence}", transient=False)

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise SentimentServiceError("Missing summary", transient=False)

    return SentimentResult(sentiment=sentiment, confidence=confidence, summary=summary.strip())


class SentimentClient(ABC):
    """Sentiment analysis collaborator."""

    @abstractmethod
    async def analyze(self, review_id: str, title: str, content: str) -> SentimentResult:
        """
        Analyze one review.

        Raises:
            SentimentServiceError: classified transient or permanent.
        """
        pass


class OpenAISentimentClient(SentimentClient):
    """Client for OpenAI chat completions (JSON mode)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 20.0,
    ):
        # Support both OPENAI_API_KEY and GPT_API_KEY
        self.api_key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("GPT_API_KEY")
        self.model = model
        self.timeout = timeout
        self._client: Optional[openai.AsyncOpenAI] = None

        if not self.api_key:
            logger.warning("OPENAI_API_KEY not set - sentiment analysis disabled")

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            # Retries are owned by SentimentAnalyzer
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key, timeout=self.timeout, max_retries=0,
            )
        return self._client

    async def analyze(self, review_id: str, title: str, content: str) -> SentimentResult:
        if not self.api_key:
            raise SentimentServiceError("OPENAI_API_KEY required", transient=False)

        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SENTIMENT_SYSTEM},
                    {"role": "user", "content": SENTIMENT_PROMPT.format(title=title, content=content)},
                ],
                temperature=0.3,
                max_tokens=500,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            raise SentimentServiceError(f"OpenAI timeout: {e}", transient=True)
        except openai.APIConnectionError as e:
            raise SentimentServiceError(f"OpenAI connection error: {e}", transient=True)
        except openai.APIStatusError as e:
            raise SentimentServiceError(
                f"OpenAI API error: {e.status_code} - {e.message}",
                transient=is_transient_status(e.status_code),
                status_code=e.status_code,
            )

        if not response.choices:
            raise SentimentServiceError("OpenAI returned no choices", transient=False)
        return parse_sentiment_payload(response.choices[0].message.content)


class AnthropicSentimentClient(SentimentClient):
    """
    Client for Claude (Anthropic).

    claude-3-5-haiku is fast and cheap enough for per-review analysis.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-3-5-haiku-20241022",
        timeout: float = 20.0,
    ):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model
        self.timeout = timeout
        self._client: Optional[anthropic.AsyncAnthropic] = None

        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not set - sentiment analysis disabled")

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key, timeout=self.timeout, max_retries=0,
            )
        return self._client

    async def analyze(self, review_id: str, title: str, content: str) -> SentimentResult:
        if not self.api_key:
            raise SentimentServiceError("ANTHROPIC_API_KEY required", transient=False)

        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=500,
                temperature=0.3,
                system=SENTIMENT_SYSTEM,
                messages=[
                    {"role": "user", "content": SENTIMENT_PROMPT.format(title=title, content=content)},
                ],
            )
        except anthropic.APITimeoutError as e:
            raise SentimentServiceError(f"Anthropic timeout: {e}", transient=True)
        except anthropic.APIConnectionError as e:
            raise SentimentServiceError(f"Anthropic connection error: {e}", transient=True)
        except anthropic.APIStatusError as e:
            raise SentimentServiceError(
                f"Anthropic API error: {e.status_code} - {e.message}",
                transient=is_transient_status(e.status_code),
                status_code=e.status_code,
            )

        text_blocks = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        return parse_sentiment_payload(text_blocks[0] if text_blocks else None)


def get_sentiment_client(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    timeout: float = 20.0,
) -> SentimentClient:
    """
    Factory for the sentiment client.

    Priority:
    1. Explicit provider
    2. OPENAI_API_KEY or GPT_API_KEY present -> OpenAI
    3. ANTHROPIC_API_KEY present -> Claude
    4. Error
    """
    openai_key = os.getenv("OPENAI_API_KEY") or os.getenv("GPT_API_KEY")
    anthropic_key = os.getenv("ANTHROPIC_API_KEY")

    if provider == LLMProvider.OPENAI.value or (not provider and openai_key):
        return OpenAISentimentClient(model=model or "gpt-4o-mini", timeout=timeout)

    if provider == LLMProvider.ANTHROPIC.value or (not provider and anthropic_key):
        return AnthropicSentimentClient(model=model or "claude-3-5-haiku-20241022", timeout=timeout)

    raise ValueError(
        "No sentiment API key found. Set OPENAI_API_KEY, GPT_API_KEY, or ANTHROPIC_API_KEY"
    )


def describe_client(client: SentimentClient) -> Dict[str, Any]:
    """Provider/model info for health endpoints."""
    if isinstance(client, OpenAISentimentClient):
        return {"provider": LLMProvider.OPENAI.value, "model": client.model, "configured": bool(client.api_key)}
    if isinstance(client, AnthropicSentimentClient):
        return {"provider": LLMProvider.ANTHROPIC.value, "model": client.model, "configured": bool(client.api_key)}
    return {"provider": type(client).__name__, "model": None, "configured": True}
