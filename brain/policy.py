"""Routing helpers that translate emotion and intent into a mode and sampling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from app.constants import DEFAULT_HEURISTICS, MODES, HeuristicConfig
from brain.emotion import EmotionScore
from brain.intent_router import IntentProfile


@dataclass(frozen=True)
class SamplingPolicy:
    """Model sampling configuration."""

    temperature: float = 0.5
    max_tokens: int = 300

    def as_kwargs(self) -> Mapping[str, float | int]:
        """Expose the policy as keyword arguments for LLM clients."""
        return {
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


def select_mode(
    emotion: EmotionScore,
    intent: IntentProfile,
    config: HeuristicConfig | None = None,
) -> str:
    """Return the first conversational mode whose threshold is crossed."""
    config = config or DEFAULT_HEURISTICS
    if emotion.risk > config.crisis_risk:
        return "crisis"
    if emotion.severity > config.therapeutic_severity:
        return "therapeutic"
    if intent.complexity > config.deep_complexity:
        return "deep"
    if intent.ambiguity > config.reflective_ambiguity:
        return "reflective"
    return "supportive"


def derive_sampling(emotion: EmotionScore, config: HeuristicConfig | None = None) -> SamplingPolicy:
    """Warm the temperature with arousal; the token cap stays fixed."""
    config = config or DEFAULT_HEURISTICS
    temperature = config.base_temperature + emotion.arousal * config.arousal_temperature_gain
    return SamplingPolicy(temperature=temperature, max_tokens=config.max_tokens)


__all__ = ["MODES", "SamplingPolicy", "derive_sampling", "select_mode"]
