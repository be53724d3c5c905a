"""Length-based intent profiling for inbound messages."""

from __future__ import annotations

from dataclasses import dataclass

from app.constants import DEFAULT_HEURISTICS, HeuristicConfig


@dataclass(frozen=True)
class IntentProfile:
    ambiguity: float
    complexity: float

    def as_dict(self) -> dict[str, float]:
        return {"ambiguity": self.ambiguity, "complexity": self.complexity}


def profile_intent(text: str, config: HeuristicConfig | None = None) -> IntentProfile:
    """Short messages read as ambiguous, long ones as complex."""
    config = config or DEFAULT_HEURISTICS
    length = len(text or "")
    ambiguity = config.ambiguity_short if length < config.short_message_chars else config.ambiguity_default
    complexity = config.complexity_long if length > config.long_message_chars else config.complexity_default
    return IntentProfile(ambiguity=ambiguity, complexity=complexity)


__all__ = ["IntentProfile", "profile_intent"]
