"""Telemetry and logging helpers."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def log_json_line(
    path: Path,
    payload: Mapping[str, Any],
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Append a JSON payload to the given log path."""
    if not payload:
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except Exception as exc:  # pragma: no cover - diagnostics only
        if logger:
            logger.debug("Failed to append json line to %s: %s", path, exc)


def compose_turn_telemetry(
    *,
    user_id: str,
    mode: str,
    emotion: Mapping[str, float],
    intent: Mapping[str, float],
    history_count: int,
    fragment_count: int,
    embedded: bool,
    safety_flagged: bool,
    personality_saved: bool,
    elapsed_ms: float,
) -> dict[str, Any]:
    """Summarise one reply turn without copying message text."""
    return {
        "timestamp": _timestamp(),
        "user_id": user_id,
        "mode": mode,
        "emotion": {key: round(float(value), 3) for key, value in emotion.items()},
        "intent": dict(intent),
        "memory": {"history": history_count, "fragments": fragment_count, "embedded": embedded},
        "safety_flagged": safety_flagged,
        "personality_saved": personality_saved,
        "elapsed_ms": round(elapsed_ms, 1),
    }


def log_turn(
    payload: Mapping[str, Any],
    path: Path | None,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Persist per-turn diagnostics when a telemetry path is configured."""
    if path is None:
        return
    log_json_line(path, payload, logger=logger)


__all__ = ["compose_turn_telemetry", "log_json_line", "log_turn"]
