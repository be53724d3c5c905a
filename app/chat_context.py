"""Helpers for building the system prompt sent with each chat completion."""

from __future__ import annotations

from typing import Sequence

from app.constants import DEFAULT_HEURISTICS, EMPTY_MEMORY_PLACEHOLDER, MEMORY_PROMPT, HeuristicConfig


def mode_directive(mode: str, config: HeuristicConfig | None = None) -> str:
    """Return the behavioural directive for a mode, falling back to supportive."""
    directives = (config or DEFAULT_HEURISTICS).mode_directives
    return directives.get(mode) or directives["supportive"]


def build_system_prompt(
    memory_text: str,
    personality: Sequence[float] | None,
    mode: str,
    config: HeuristicConfig | None = None,
) -> list[dict[str, str]]:
    """Compose the system message from persona, mode directive and memory.

    ``personality`` is accepted so callers pass what they loaded, but it is not
    rendered into the instruction text.
    """
    config = config or DEFAULT_HEURISTICS
    content = (
        f"{config.persona_prompt} {mode_directive(mode, config)}\n"
        f"{MEMORY_PROMPT}\n"
        f"MEMORY:\n{memory_text or EMPTY_MEMORY_PLACEHOLDER}"
    )
    return [{"role": "system", "content": content}]


def build_messages(system: Sequence[dict[str, str]], user_message: str) -> list[dict[str, str]]:
    """Append the user turn to the system prompt."""
    return [*system, {"role": "user", "content": user_message}]


__all__ = ["build_messages", "build_system_prompt", "mode_directive"]
