"""Conversion of event payloads, events and listeners between data types."""

from __future__ import annotations

from typing import Any

from .event import Event, _matches_type, _type_name
from .listener import Listener, ListenerFunc
from .util import EventError


def convert_data(data: Any, data_type: Any) -> Any:
    """Return ``data`` if it is of ``data_type``; ``None`` passes through.

    Raises ``TypeError`` for any other value.
    """
    if data is None:
        return None
    if _matches_type(data, data_type):
        return data
    raise TypeError(
        f"event: cannot convert data from {type(data).__name__} to {_type_name(data_type)}"
    )


def _empty_like(value: Any) -> Any:
    if value is None:
        return None
    try:
        return type(value)()
    except TypeError:
        return None


class _ConvertedEvent(Event):
    """An event whose payload was converted; everything else is the original's."""

    def __init__(self, original: Event, data: Any) -> None:
        self.original = original
        self._data = data
        self._props: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self.original.name

    @property
    def data(self) -> Any:
        return self._data

    @data.setter
    def data(self, value: Any) -> None:
        self._data = value
        try:
            self.original.data = _empty_like(self.original.data)
        except Exception as exc:
            raise EventError(f"failed to update original event data: {exc}") from exc

    def abort(self, flag: bool = True) -> None:
        self.original.abort(flag)

    @property
    def aborted(self) -> bool:
        return self.original.aborted

    def get(self, key: str) -> Any:
        if key in self._props:
            return self._props[key]
        return self.original.get(key)

    def set(self, key: str, value: Any) -> _ConvertedEvent:
        self._props[key] = value
        self.original.set(key, value)
        return self


def convert_event(event: Event, data_type: Any) -> Event:
    """Wrap ``event`` so its payload is seen as ``data_type``.

    Raises ``TypeError`` when the payload is not of that type.
    """
    try:
        data = convert_data(event.data, data_type)
    except TypeError as exc:
        raise TypeError(f"event: {exc} for event {event.name}") from exc
    return _ConvertedEvent(event, data)


def convert_listener(listener: Listener, data_type: Any) -> Listener:
    """A listener that converts each event to ``data_type`` before handing it on."""

    def handle(event: Event) -> Any:
        return listener.handle(convert_event(event, data_type))

    return ListenerFunc(handle)