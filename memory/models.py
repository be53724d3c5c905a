"""SQLModel models for chat turns, memory fragments and personality vectors."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

SENDER_ROLES = ("user", "bot")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatTurn(SQLModel, table=True):
    """One appended message of a conversation."""

    __tablename__ = "chats"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, min_length=1)
    sender: str = Field(index=True)
    message: str
    timestamp: datetime = Field(default_factory=_utcnow, index=True)


class MemoryFragment(SQLModel, table=True):
    """Stored text fragment searchable by embedding similarity."""

    __tablename__ = "memory_fragments"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True, min_length=1)
    content: str = Field(min_length=1)
    embedding: list[float] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class PersonalityVector(SQLModel, table=True):
    """Latest expressive-style embedding for a user; one row per user."""

    __tablename__ = "user_personality"

    user_id: str = Field(primary_key=True)
    vector: list[float] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow)


__all__ = ["ChatTurn", "MemoryFragment", "PersonalityVector", "SENDER_ROLES"]
