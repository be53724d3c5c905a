"""Post-generation safety gate replacing replies that mention harmful methods.

The gate is a blunt keyword filter applied after the model answers. It catches
the listed phrasings only and is not a safety guarantee.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List

from app.constants import SAFE_REPLY, UNSAFE_REPLY_PATTERN


@dataclass
class SafetyVerdict:
    flagged: bool = False
    matches: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "flagged": self.flagged,
            "matches": list(dict.fromkeys(self.matches)),
        }


class SafetyGuard:
    def __init__(self, *, pattern: str = UNSAFE_REPLY_PATTERN, safe_reply: str = SAFE_REPLY) -> None:
        self._pattern = re.compile(pattern, re.IGNORECASE)
        self.safe_reply = safe_reply

    def evaluate(self, reply: str | None) -> SafetyVerdict:
        text = reply or ""
        matches = [match.group(0).lower() for match in self._pattern.finditer(text)]
        return SafetyVerdict(flagged=bool(matches), matches=matches)

    def apply(self, reply: str | None) -> tuple[str, SafetyVerdict]:
        """Return the reply to send along with the verdict that produced it."""
        verdict = self.evaluate(reply)
        if verdict.flagged:
            return self.safe_reply, verdict
        return reply or "", verdict


__all__ = ["SafetyGuard", "SafetyVerdict"]
