"""
Review Moderation
=================

Status lifecycle of a review: system entry rule plus moderator transitions.
"""

from .state_machine import InvalidTransition, ModerationStateMachine, TERMINAL_STATES

__all__ = ["InvalidTransition", "ModerationStateMachine", "TERMINAL_STATES"]
