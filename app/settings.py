"""Runtime settings loader and related helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from app.constants import APP_NAME, DEFAULT_HEURISTICS, HeuristicConfig
from utils.settings import BASE_DIR, load_settings


def _parse_float(value: Any, default: float) -> float:
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_int(value: Any, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_bool(value: Any, default: bool = False) -> bool:
    if value in (None, ""):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on", "enable", "enabled"}:
            return True
        if normalized in {"0", "false", "no", "off", "disable", "disabled"}:
            return False
    return default


def _get_setting(settings: dict[str, Any], key: str, env_var: str, default: Any = None) -> Any:
    value = settings.get(key)
    if value not in (None, ""):
        return value
    env_value = os.getenv(env_var)
    if env_value not in (None, ""):
        return env_value
    return default


def _resolve_path(value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = BASE_DIR / path
    return path


@dataclass(frozen=True)
class RuntimeSettings:
    raw: dict[str, Any]
    app_name: str
    provider_base_url: str
    provider_api_key: str
    chat_model: str
    embedding_model: str
    llm_timeout: float
    llm_max_retries: int
    database_path: Path
    history_limit: int
    match_count: int
    match_threshold: float
    max_tokens: int
    max_message_chars: int
    telemetry_enabled: bool
    telemetry_path: Path

    @classmethod
    def load(cls) -> "RuntimeSettings":
        settings = load_settings()

        def getter(key: str, env: str, default: Any = None) -> Any:
            return _get_setting(settings, key, env, default)

        app_name = str(getter("app_name", "PISKOQO_APP_NAME", APP_NAME) or APP_NAME).strip()
        provider_base_url = str(
            getter("provider_base_url", "PISKOQO_PROVIDER_URL", "https://openrouter.ai/api/v1") or ""
        ).strip()
        provider_api_key = str(getter("provider_api_key", "OPENROUTER_API_KEY", "") or "").strip()
        chat_model = str(
            getter("chat_model", "PISKOQO_CHAT_MODEL", "qwen/qwen3-max-thinking") or ""
        ).strip()
        embedding_model = str(
            getter("embedding_model", "PISKOQO_EMBEDDING_MODEL", "qwen/qwen3-embedding-8b:nitro") or ""
        ).strip()
        llm_timeout = _parse_float(getter("llm_timeout", "PISKOQO_LLM_TIMEOUT"), 30.0)
        llm_max_retries = _parse_int(getter("llm_max_retries", "PISKOQO_LLM_MAX_RETRIES"), 2)
        database_path = _resolve_path(
            str(getter("database_path", "PISKOQO_DATABASE_PATH", "data/piskoqo.db") or "data/piskoqo.db")
        )
        history_limit = _parse_int(
            getter("history_limit", "PISKOQO_HISTORY_LIMIT"),
            DEFAULT_HEURISTICS.history_limit,
        )
        match_count = _parse_int(
            getter("match_count", "PISKOQO_MATCH_COUNT"),
            DEFAULT_HEURISTICS.match_count,
        )
        match_threshold = _parse_float(
            getter("match_threshold", "PISKOQO_MATCH_THRESHOLD"),
            DEFAULT_HEURISTICS.match_threshold,
        )
        max_tokens = _parse_int(
            getter("max_tokens", "PISKOQO_MAX_TOKENS"),
            DEFAULT_HEURISTICS.max_tokens,
        )
        max_message_chars = _parse_int(
            getter("max_message_chars", "PISKOQO_MAX_MESSAGE_CHARS"),
            DEFAULT_HEURISTICS.max_message_chars,
        )
        telemetry_enabled = _parse_bool(getter("telemetry_enabled", "PISKOQO_TELEMETRY"), True)
        telemetry_path = _resolve_path(
            str(getter("telemetry_path", "PISKOQO_TELEMETRY_PATH", "logs/turns.jsonl") or "logs/turns.jsonl")
        )

        return cls(
            raw=settings,
            app_name=app_name,
            provider_base_url=provider_base_url,
            provider_api_key=provider_api_key,
            chat_model=chat_model,
            embedding_model=embedding_model,
            llm_timeout=llm_timeout,
            llm_max_retries=llm_max_retries,
            database_path=database_path,
            history_limit=history_limit,
            match_count=match_count,
            match_threshold=match_threshold,
            max_tokens=max_tokens,
            max_message_chars=max_message_chars,
            telemetry_enabled=telemetry_enabled,
            telemetry_path=telemetry_path,
        )

    def heuristics(self, base: HeuristicConfig | None = None) -> HeuristicConfig:
        """Apply the configured limits on top of the default heuristic knobs."""
        return (base or DEFAULT_HEURISTICS).with_overrides(
            history_limit=max(0, self.history_limit),
            match_count=max(0, self.match_count),
            match_threshold=self.match_threshold,
            max_tokens=max(1, self.max_tokens),
            max_message_chars=max(0, self.max_message_chars),
        )


__all__ = ["RuntimeSettings"]


def clear_settings_cache() -> None:
    """Reset the cached settings loader."""
    load_settings.cache_clear()


__all__.append("clear_settings_cache")
