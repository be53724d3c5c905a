"""Keyword heuristics estimating valence, arousal and crisis risk from user text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.constants import DEFAULT_HEURISTICS, HeuristicConfig


@dataclass(frozen=True)
class EmotionScore:
    """Per-request emotion estimate; never persisted."""

    valence: float = 0.0
    arousal: float = 0.0
    risk: float = 0.0

    @property
    def severity(self) -> float:
        return max(self.risk, abs(self.valence) + self.arousal / 2)

    def as_dict(self) -> dict[str, Any]:
        return {
            "valence": self.valence,
            "arousal": self.arousal,
            "risk": self.risk,
            "severity": self.severity,
        }


def score_emotion(text: str, config: HeuristicConfig | None = None) -> EmotionScore:
    """Run the ordered keyword rules over the text."""
    config = config or DEFAULT_HEURISTICS
    lowered = (text or "").lower()
    scalars = {"valence": 0.0, "arousal": 0.0, "risk": 0.0}
    for rule in config.emotion_rules:
        if rule.matches(lowered):
            scalars[rule.scalar] = rule.value
    return EmotionScore(**scalars)


__all__ = ["EmotionScore", "score_emotion"]
