"""Synchronous change notifications for whatever is presenting the session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    IMAGE = auto()
    DIRECTORY = auto()
    TAGS = auto()


@dataclass(frozen=True)
class ChangeEvent:
    """What changed: an Image, a Directory, or the tag list (subject None)."""

    kind: ChangeKind
    subject: Any = None


Listener = Callable[[ChangeEvent], None]


class EventBus:
    """Deliver each event to every listener, in subscription order, before returning."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: ChangeEvent) -> None:
        logger.debug(f"Emitting {event.kind.name} to {len(self._listeners)} listener(s)")
        for listener in list(self._listeners):
            listener(event)

    def __len__(self) -> int:
        return len(self._listeners)
