"""Application helper package."""

from . import constants, settings, chat_context

__all__ = ["constants", "settings", "chat_context"]
