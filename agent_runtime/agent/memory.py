"""
Memory Store — Short-term, working and long-term memory for one agent

- Short-term: recent items, appended after every reasoning step
- Working: items scoped to the task currently being executed
- Long-term: important items promoted out of short-term, ranked by importance

When short-term grows past the compression threshold, important items
(importance > 0.7) are promoted to long-term and the rest are trimmed.
"""
from typing import Dict, Any, List, Optional, Iterable, Union
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid

from agent_runtime.config import MemoryConfig
from agent_runtime.logs import get_logger
from agent_runtime.models import MemoryType

logger = get_logger(__name__)

# Items strictly above this importance survive compression in long-term memory
PROMOTION_THRESHOLD = 0.7
# How many long-term items take part in retrieval
LONG_TERM_RETRIEVAL_WINDOW = 10
ACCESS_WEIGHT = 0.1


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MemoryItem:
    """A single remembered fact, event or outcome"""
    content: str
    memory_type: MemoryType = MemoryType.CONVERSATION
    importance_score: float = 0.5
    access_count: int = 0
    tags: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    last_accessed_at: datetime = field(default_factory=_now)

    def __post_init__(self):
        self.importance_score = min(1.0, max(0.0, float(self.importance_score)))

    @property
    def relevance(self) -> float:
        """Composite retrieval score"""
        return self.importance_score + self.access_count * ACCESS_WEIGHT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "memory_type": self.memory_type.value,
            "content": self.content,
            "importance_score": self.importance_score,
            "access_count": self.access_count,
            "created_at": self.created_at.isoformat(),
            "last_accessed_at": self.last_accessed_at.isoformat(),
            "tags": list(self.tags),
        }


class MemoryStore:
    """
    Tiered memory of one agent.

    Not locked: a store belongs to exactly one agent and is only touched by
    that agent's (sequential) reasoning loop.

    Usage:
        memory = MemoryStore(MemoryConfig())
        memory.add("Tool call: search -> ok", importance=0.7,
                   memory_type=MemoryType.TOOL_USAGE)
        context = memory.retrieve_relevant(limit=5)
    """

    def __init__(self, config: Optional[MemoryConfig] = None):
        self.config = config or MemoryConfig()
        self.short_term: List[MemoryItem] = []
        self.working: List[MemoryItem] = []
        self.long_term: List[MemoryItem] = []

    def __len__(self) -> int:
        return len(self.short_term) + len(self.working) + len(self.long_term)

    # ─── Writes ──────────────────────────────────────────────────────────────

    def add(
        self,
        item: Union[MemoryItem, str],
        importance: Optional[float] = None,
        memory_type: MemoryType = MemoryType.CONVERSATION,
        tags: Optional[List[str]] = None,
    ) -> MemoryItem:
        """
        Append an item to short-term memory, compressing if it overflows.

        Args:
            item: A MemoryItem, or plain text content to wrap in one
            importance: Importance score in [0, 1]; overrides the item's own
            memory_type: Type for plain-text content
            tags: Tags for plain-text content

        Returns:
            The stored MemoryItem
        """
        item = self._coerce(item, importance, memory_type, tags)
        self.short_term.append(item)

        if len(self.short_term) > self.config.memory_compression_threshold:
            self.compress()

        logger.debug(
            f"Memory added: type={item.memory_type.value} importance={item.importance_score:.2f} "
            f"short_term={len(self.short_term)}"
        )
        return item

    def add_working(
        self,
        item: Union[MemoryItem, str],
        importance: Optional[float] = None,
        memory_type: MemoryType = MemoryType.TASK_EXECUTION,
        tags: Optional[List[str]] = None,
    ) -> MemoryItem:
        """Append an item to working memory, dropping the oldest past capacity"""
        item = self._coerce(item, importance, memory_type, tags)
        self.working.append(item)
        overflow = len(self.working) - self.config.working_memory_size
        if overflow > 0:
            del self.working[:overflow]
        return item

    def clear_working(self) -> None:
        """Forget task-scoped memory (a new task is starting)"""
        self.working.clear()

    def compress(self) -> None:
        """
        Promote important short-term items and trim the rest.

        Items with importance > 0.7 move to long-term. The others are kept up
        to half the short-term capacity, newest first. Long-term is then
        ranked by importance and truncated to its capacity.
        """
        important: List[MemoryItem] = []
        remaining: List[MemoryItem] = []
        for item in self.short_term:
            if item.importance_score > PROMOTION_THRESHOLD:
                important.append(item)
            else:
                remaining.append(item)

        keep = self.config.short_term_memory_size // 2
        dropped = max(0, len(remaining) - keep)
        self.short_term = remaining[dropped:]
        self.long_term.extend(important)

        if len(self.long_term) > self.config.long_term_memory_size:
            self.long_term.sort(key=lambda m: m.importance_score, reverse=True)
            del self.long_term[self.config.long_term_memory_size:]

        logger.debug(
            f"Memory compressed: promoted={len(important)} dropped={dropped} "
            f"short_term={len(self.short_term)} long_term={len(self.long_term)}"
        )

    # ─── Reads ───────────────────────────────────────────────────────────────

    def retrieve_relevant(self, limit: int = 5) -> List[MemoryItem]:
        """
        Return up to `limit` items ranked by importance + 0.1 * access_count.

        Candidates are all short-term and working items plus the most recent
        long-term items. Ties keep discovery order (short-term, working,
        long-term), so the result is deterministic for a given state.
        """
        if limit <= 0:
            return []

        recent_long_term = sorted(self.long_term, key=lambda m: m.created_at, reverse=True)
        candidates = self.short_term + self.working + recent_long_term[:LONG_TERM_RETRIEVAL_WINDOW]
        ranked = sorted(candidates, key=lambda m: m.relevance, reverse=True)
        return ranked[:limit]

    def mark_accessed(self, items: Iterable[MemoryItem]) -> None:
        """Record that items were read (feeds the access-count term of the score)"""
        now = _now()
        for item in items:
            item.access_count += 1
            item.last_accessed_at = now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "short_term": [m.to_dict() for m in self.short_term],
            "working": [m.to_dict() for m in self.working],
            "long_term": [m.to_dict() for m in self.long_term],
        }

    @staticmethod
    def _coerce(
        item: Union[MemoryItem, str],
        importance: Optional[float],
        memory_type: MemoryType,
        tags: Optional[List[str]],
    ) -> MemoryItem:
        if isinstance(item, MemoryItem):
            if importance is not None:
                item.importance_score = min(1.0, max(0.0, float(importance)))
            return item
        return MemoryItem(
            content=str(item),
            memory_type=memory_type,
            importance_score=0.5 if importance is None else importance,
            tags=list(tags or []),
        )
