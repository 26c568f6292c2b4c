"""Event objects, event adapters and event-manager options."""

from __future__ import annotations

import copy
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable

M = dict[str, Any]

DEFAULT_CHANNEL_SIZE = 100
DEFAULT_CONSUMER_NUM = 3


def _matches_type(value: Any, data_type: Any) -> bool:
    """Check ``value`` against ``data_type``; ``None``/``Any``/``object`` accept all."""
    if data_type is None or data_type is Any or data_type is object:
        return True
    origin = typing.get_origin(data_type) or data_type
    return isinstance(value, origin)


def _type_name(data_type: Any) -> str:
    if data_type is None:
        return "any"
    return getattr(data_type, "__name__", repr(data_type))


class MatchMode(IntEnum):
    """How listener names are matched against fired event names.

    ``SIMPLE``: ``"user.*"`` matches ``"user.created"``; ``"*"`` only at the end.
    ``PATH``: ``"*"`` matches one node, ``"**"`` matches everything up to the
    start or end of the name.
    """

    SIMPLE = 0
    PATH = 1


@dataclass
class Options:
    """Event manager configuration."""

    enable_lock: bool = False
    channel_size: int = DEFAULT_CHANNEL_SIZE
    consumer_num: int = DEFAULT_CONSUMER_NUM
    match_mode: MatchMode = MatchMode.SIMPLE


OptionFn = Callable[[Options], None]


def use_path_mode(options: Options) -> None:
    """Option that switches name matching to ``MatchMode.PATH``."""
    options.match_mode = MatchMode.PATH


def enable_lock(enable: bool) -> OptionFn:
    """Option that turns locking around event dispatch on or off."""

    def apply(options: Options) -> None:
        options.enable_lock = enable

    return apply


class Subscriber(ABC):
    """Supplies a mapping of event names to listeners."""

    @abstractmethod
    def subscribed_events(self) -> dict[str, Any]:
        """Map event names to listeners, listener items or callables."""


class Event(ABC):
    """An event that is passed to listeners."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The event name."""

    @property
    @abstractmethod
    def data(self) -> Any:
        """The event payload."""

    @data.setter
    @abstractmethod
    def data(self, value: Any) -> None:
        """Replace the event payload."""

    @abstractmethod
    def abort(self, flag: bool = True) -> None:
        """Mark the event as aborted, or clear the mark."""

    @property
    @abstractmethod
    def aborted(self) -> bool:
        """Whether dispatch of this event was aborted."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Read a property by key."""

    @abstractmethod
    def set(self, key: str, value: Any) -> Event:
        """Write a property by key and return the event."""


class BasicEvent(Event):
    """The built-in event: a name, a payload, a target and an abort flag.

    Properties are stored in the payload when it is a ``dict``.
    """

    def __init__(self, name: str = "", data: Any = None, target: Any = None) -> None:
        self._name = name
        self._data = data
        self._target = target
        self._aborted = False

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def data(self) -> Any:
        return self._data

    @data.setter
    def data(self, value: Any) -> None:
        self._data = value

    @property
    def target(self) -> Any:
        return self._target

    @target.setter
    def target(self, value: Any) -> None:
        self._target = value

    def abort(self, flag: bool = True) -> None:
        self._aborted = flag

    @property
    def aborted(self) -> bool:
        return self._aborted

    def fill(self, target: Any, data: Any) -> BasicEvent:
        """Set target and payload together."""
        self._data = data
        self._target = target
        return self

    def clone(self) -> BasicEvent:
        """A shallow copy; the payload object is shared."""
        return copy.copy(self)

    def get(self, key: str) -> Any:
        if isinstance(self._data, dict):
            return self._data.get(key)
        return None

    def set(self, key: str, value: Any) -> BasicEvent:
        if isinstance(self._data, dict):
            self._data[key] = value
        return self

    def attach_to(self, manager: Any) -> None:
        """Register this event as a pre-defined event of ``manager``."""
        manager.add_event(self)

    def __repr__(self) -> str:
        return f"BasicEvent(name={self._name!r}, data={self._data!r})"


class TypedEventView(Event):
    """Presents an untyped event to a typed listener.

    Payload changes, abort state and properties are forwarded to the
    original event.
    """

    def __init__(self, original: Event, data: Any) -> None:
        self.original = original
        self._data = data

    @property
    def name(self) -> str:
        return self.original.name

    @property
    def data(self) -> Any:
        return self._data

    @data.setter
    def data(self, value: Any) -> None:
        self._data = value
        self.original.data = value

    def abort(self, flag: bool = True) -> None:
        self.original.abort(flag)

    @property
    def aborted(self) -> bool:
        return self.original.aborted

    def get(self, key: str) -> Any:
        return self.original.get(key)

    def set(self, key: str, value: Any) -> TypedEventView:
        self.original.set(key, value)
        return self


class AnyEventAdapter(Event):
    """Presents a typed event to code that handles events of any type.

    Assigned payloads are checked against ``data_type`` before being
    forwarded to the original event.
    """

    def __init__(self, original: Event, data_type: Any = None) -> None:
        self.original = original
        self.data_type = data_type

    @property
    def name(self) -> str:
        return self.original.name

    @property
    def data(self) -> Any:
        return self.original.data

    @data.setter
    def data(self, value: Any) -> None:
        if value is not None and not _matches_type(value, self.data_type):
            raise TypeError(
                f"event: type error in SetData, event {self.original.name}. "
                f"Expected data type {_type_name(self.data_type)}, "
                f"got {type(value).__name__}"
            )
        self.original.data = value

    def abort(self, flag: bool = True) -> None:
        self.original.abort(flag)

    @property
    def aborted(self) -> bool:
        return self.original.aborted

    def get(self, key: str) -> Any:
        return self.original.get(key)

    def set(self, key: str, value: Any) -> AnyEventAdapter:
        self.original.set(key, value)
        return self