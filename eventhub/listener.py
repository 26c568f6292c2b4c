"""Listeners, listener priorities and the priority-ordered listener queue."""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Iterator

from .util import EventError


class Priority(IntEnum):
    """Default listener priorities; higher runs first."""

    MIN = -300
    LOW = -200
    BELOW_NORMAL = -100
    NORMAL = 0
    ABOVE_NORMAL = 100
    HIGH = 200
    MAX = 300


class Listener(ABC):
    """Something that handles events and carries a unique id.

    A listener signals failure by raising an exception from ``handle``.
    """

    @abstractmethod
    def handle(self, event: Any) -> Any:
        """Handle one event."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier of this listener."""


_id_counter = itertools.count(1)
_id_lock = threading.Lock()


def _next_func_id() -> str:
    with _id_lock:
        return f"func_{next(_id_counter)}"


class ListenerFunc(Listener):
    """A plain callable wrapped as a listener with a generated id."""

    __slots__ = ("_fn", "_id")

    def __init__(self, fn: Callable[[Any], Any]) -> None:
        if fn is None:
            raise EventError("event: listener function cannot be None")
        if not callable(fn):
            raise EventError("event: listener function must be callable")
        self._fn = fn
        self._id = _next_func_id()

    def handle(self, event: Any) -> Any:
        return self._fn(event)

    @property
    def id(self) -> str:
        return self._id

    def __repr__(self) -> str:
        return f"ListenerFunc(id={self._id!r})"


@dataclass(eq=False)
class ListenerItem:
    """A listener together with its priority."""

    listener: Listener
    priority: int = Priority.NORMAL
    id: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.listener is None:
            raise EventError("event: listener cannot be None")
        self.id = self.listener.id


class ListenerQueue:
    """Listener items kept unique by id and ordered by priority."""

    def __init__(self) -> None:
        self._items: list[ListenerItem] = []
        self._index: dict[str, ListenerItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ListenerItem]:
        return iter(list(self._items))

    def push(self, item: ListenerItem) -> ListenerQueue:
        """Add an item unless one with the same id is already queued."""
        if item.id not in self._index:
            self._items.append(item)
            self._index[item.id] = item
        return self

    def sort(self) -> ListenerQueue:
        """Order items from highest to lowest priority, keeping ties stable."""
        self._items.sort(key=lambda item: item.priority, reverse=True)
        return self

    def items(self) -> list[ListenerItem]:
        """A snapshot of the queued items in their current order."""
        return list(self._items)

    def remove(self, listener: Listener | None) -> None:
        """Remove the item whose id matches the listener's id."""
        if listener is None or not self._index:
            return
        target = listener.id
        self._index.pop(target, None)
        self._items = [item for item in self._items if item.id != target]

    def clear(self) -> None:
        self._items.clear()
        self._index.clear()