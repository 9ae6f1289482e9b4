"""Observable event records emitted by deals, the factory and the oracle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from .canonicaljson import canonicalize


@dataclass(frozen=True)
class Event:
    name: str
    args: dict[str, Any]
    emitter: str = ""

    def to_json(self) -> bytes:
        """Canonical JSON bytes of ``{"emitter", "event", "args"}``."""
        return canonicalize(
            {"emitter": self.emitter, "event": self.name, "args": self.args}
        )


@dataclass
class EventLog:
    """Append-only list of events for one emitter."""

    emitter: str = ""
    _events: list[Event] = field(default_factory=list)

    def emit(self, name: str, **args: Any) -> Event:
        event = Event(name=name, args=dict(args), emitter=self.emitter)
        self._events.append(event)
        return event

    def filter(self, name: str) -> list[Event]:
        return [ev for ev in self._events if ev.name == name]

    def last(self) -> Event | None:
        return self._events[-1] if self._events else None

    def export(self) -> list[bytes]:
        """All events as canonical JSON, in emission order."""
        return [ev.to_json() for ev in self._events]

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
