"""Centralized constant definitions used across the runtime."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

APP_NAME = "piskoqo"
ANONYMOUS_USER = "anonymous"

MODES: tuple[str, ...] = ("crisis", "therapeutic", "deep", "reflective", "supportive")

PERSONA_PROMPT = (
    "Kamu pendamping curhat manusiawi. Hangat, reflektif, empatik, tidak kaku. "
    "Fokus membantu memahami perasaan dan langkah kecil yang realistis."
)
MEMORY_PROMPT = "Gunakan memori percakapan jika relevan."
EMPTY_MEMORY_PLACEHOLDER = "kosong"

MODE_DIRECTIVES: dict[str, str] = {
    "crisis": "Prioritaskan keselamatan emosional dan dukungan nyata.",
    "therapeutic": "Gunakan pendekatan refleksi emosi mendalam dan validasi pengalaman.",
    "deep": "Gunakan eksplorasi bertahap dan insight psikologis ringan.",
    "reflective": "Ajukan pertanyaan klarifikasi lembut.",
    "supportive": "Balasan empatik ringkas.",
}

SAFE_REPLY = (
    "Aku peduli sama kamu. Kita fokus ke hal yang aman dulu. "
    "Mau cerita apa yang paling berat sekarang."
)
FAILURE_REPLY = "Ada kendala sistem. Coba lagi ya."

UNSAFE_REPLY_PATTERN = r"cara bunuh diri|overdosis"


@dataclass(frozen=True)
class EmotionRule:
    """Keyword rule assigning a fixed value to one emotion scalar."""

    scalar: str
    pattern: str
    value: float

    def __post_init__(self) -> None:
        if self.scalar not in {"valence", "arousal", "risk"}:
            raise ValueError(f"Unknown emotion scalar '{self.scalar}'.")

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None


# Evaluated in order; the last matching rule wins for its scalar.
EMOTION_RULES: tuple[EmotionRule, ...] = (
    EmotionRule("risk", r"bunuh diri|mati aja|gak mau hidup", 1.0),
    EmotionRule("valence", r"putus asa|hampa|tidak berarti", -0.9),
    EmotionRule("arousal", r"cemas|panik|takut", 0.8),
    EmotionRule("valence", r"lelah|capek|kosong", -0.6),
    EmotionRule("arousal", r"marah|benci", 0.7),
    EmotionRule("valence", r"lega|tenang|syukur", 0.6),
)


@dataclass(frozen=True)
class HeuristicConfig:
    """Tunable knobs for the heuristic reply pipeline.

    Recognised options:

    * ``emotion_rules`` -- ordered keyword rules for valence, arousal and risk.
    * ``short_message_chars`` / ``long_message_chars`` -- length bounds for the
      intent profile, with the ambiguity and complexity values they yield.
    * ``crisis_risk`` ... ``reflective_ambiguity`` -- mode selection thresholds,
      checked in that order.
    * ``base_temperature`` / ``arousal_temperature_gain`` / ``max_tokens`` --
      sampling for the completion request.
    * ``history_limit`` / ``match_count`` / ``match_threshold`` -- retrieval
      limits.
    * ``unsafe_reply_pattern`` / ``safe_reply`` -- post-generation safety gate.
    """

    emotion_rules: tuple[EmotionRule, ...] = EMOTION_RULES
    short_message_chars: int = 20
    long_message_chars: int = 200
    ambiguity_short: float = 0.7
    ambiguity_default: float = 0.2
    complexity_long: float = 0.7
    complexity_default: float = 0.3
    crisis_risk: float = 0.8
    therapeutic_severity: float = 0.7
    deep_complexity: float = 0.6
    reflective_ambiguity: float = 0.5
    base_temperature: float = 0.5
    arousal_temperature_gain: float = 0.3
    max_tokens: int = 300
    history_limit: int = 20
    match_count: int = 6
    match_threshold: float = 0.78
    max_message_chars: int = 4000
    persona_prompt: str = PERSONA_PROMPT
    mode_directives: Mapping[str, str] = field(default_factory=lambda: dict(MODE_DIRECTIVES))
    unsafe_reply_pattern: str = UNSAFE_REPLY_PATTERN
    safe_reply: str = SAFE_REPLY

    def with_overrides(self, **overrides: Any) -> "HeuristicConfig":
        """Return a copy with the supplied fields replaced."""
        return replace(self, **overrides)


DEFAULT_HEURISTICS = HeuristicConfig()


__all__ = [
    "ANONYMOUS_USER",
    "APP_NAME",
    "DEFAULT_HEURISTICS",
    "EMOTION_RULES",
    "EMPTY_MEMORY_PLACEHOLDER",
    "EmotionRule",
    "FAILURE_REPLY",
    "HeuristicConfig",
    "MEMORY_PROMPT",
    "MODES",
    "MODE_DIRECTIVES",
    "PERSONA_PROMPT",
    "SAFE_REPLY",
    "UNSAFE_REPLY_PATTERN",
]
