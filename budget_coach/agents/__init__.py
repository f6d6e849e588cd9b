"""AI Agents package."""

from budget_coach.agents.coach import (
    EMPTY_REPLY,
    SYSTEM_PROMPT,
    ChatRequestError,
    CoachError,
    CoachNotConfiguredError,
    CoachServiceError,
    FinancialCoachAgent,
    build_system_instruction,
    to_gemini_contents,
)

__all__ = [
    "EMPTY_REPLY",
    "SYSTEM_PROMPT",
    "ChatRequestError",
    "CoachError",
    "CoachNotConfiguredError",
    "CoachServiceError",
    "FinancialCoachAgent",
    "build_system_instruction",
    "to_gemini_contents",
]
