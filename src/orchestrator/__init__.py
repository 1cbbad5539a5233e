"""
Review Trust Orchestrator Module
================================

Orchestration layer for review submissions.

Components:
    - ReviewPipeline: submission coordinator and moderation entry point
    - setup_logging: structured logging configuration

Usage:
    from src.orchestrator import ReviewPipeline

    review = await pipeline.submit_review(submission)
"""

from .review_pipeline import ReviewPipeline
from .logging_config import JSONFormatter, setup_logging

__all__ = [
    "ReviewPipeline",
    "JSONFormatter",
    "setup_logging",
]
