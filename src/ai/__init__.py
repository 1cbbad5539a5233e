"""
Review Trust AI Module
======================

Sentiment enrichment of reviews:
- SentimentClient implementations (OpenAI, Claude)
- SentimentAnalyzer: retrying orchestration and result application
"""

from .llm_client import (
    SentimentClient,
    SentimentServiceError,
    OpenAISentimentClient,
    AnthropicSentimentClient,
    get_sentiment_client,
    parse_sentiment_payload,
)
from .sentiment_analyzer import SentimentAnalyzer, SentimentOutcome

__all__ = [
    "SentimentClient",
    "SentimentServiceError",
    "OpenAISentimentClient",
    "AnthropicSentimentClient",
    "get_sentiment_client",
    "parse_sentiment_payload",
    "SentimentAnalyzer",
    "SentimentOutcome",
]
