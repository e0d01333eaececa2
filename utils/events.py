"""
Event Emission - Structured counters and leveled events.

Budget, rate-limit and fallback outcomes are emitted here instead of being
printed ad hoc. The default emitter writes through loguru with the event
fields bound as `extra`, so any sink (file, JSON, collector) can pick them up.

Usage:
    from utils.events import default_emitter

    default_emitter.increment("batch.fallback", reason="rate_limited")
    default_emitter.emit("WARNING", "budget.threshold", category="scoring", percent=84)
"""
import threading
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from loguru import logger


class EventEmitter(ABC):
    """
    Interface consumed by the scoring components.

    Implementations must be synchronous and must not block on I/O.
    """

    @abstractmethod
    def increment(self, name: str, value: int = 1, **tags: Any) -> None:
        """Increment a named counter."""
        pass

    @abstractmethod
    def emit(self, level: str, name: str, message: str = "", **fields: Any) -> None:
        """Emit a leveled event with structured fields."""
        pass


def _counter_key(name: str, tags: Dict[str, Any]) -> Tuple:
    return (name,) + tuple(sorted((k, str(v)) for k, v in tags.items()))


class LoguruEventEmitter(EventEmitter):
    """Emit events through loguru and keep in-process counters."""

    def __init__(self):
        self._counters: Counter = Counter()
        self._lock = threading.Lock()

    def increment(self, name: str, value: int = 1, **tags: Any) -> None:
        with self._lock:
            self._counters[_counter_key(name, tags)] += value

    def emit(self, level: str, name: str, message: str = "", **fields: Any) -> None:
        logger.bind(event=name, **fields).log(level.upper(), message or name)

    def counters(self) -> Dict[Tuple, int]:
        """Snapshot of counter values keyed by (name, *sorted tags)."""
        with self._lock:
            return dict(self._counters)


@dataclass
class RecordedEvent:
    level: str
    name: str
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)


class RecordingEventEmitter(LoguruEventEmitter):
    """Emitter that also keeps every event in memory. Used in tests."""

    def __init__(self):
        super().__init__()
        self.events: List[RecordedEvent] = []

    def emit(self, level: str, name: str, message: str = "", **fields: Any) -> None:
        self.events.append(RecordedEvent(level.upper(), name, message, dict(fields)))
        super().emit(level, name, message, **fields)

    def named(self, name: str) -> List[RecordedEvent]:
        return [e for e in self.events if e.name == name]

    def count(self, name: str, **tags: Any) -> int:
        return self.counters().get(_counter_key(name, tags), 0)


# Process-wide default
default_emitter = LoguruEventEmitter()
