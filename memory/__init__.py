"""Memory subsystem exports."""

from .models import ChatTurn, MemoryFragment, PersonalityVector
from .personality import PersonalityStore
from .repository import FragmentMatch, MemoryRepository
from .retriever import HistoryLine, MemoryRecall, MemoryRetriever

__all__ = [
    "ChatTurn",
    "FragmentMatch",
    "HistoryLine",
    "MemoryFragment",
    "MemoryRecall",
    "MemoryRepository",
    "MemoryRetriever",
    "PersonalityStore",
    "PersonalityVector",
]
