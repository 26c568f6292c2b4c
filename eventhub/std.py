"""The process-wide default event manager and functions that act on it."""

from __future__ import annotations

import threading
from typing import Any, Callable

from .adapter import StdManagerAdapter, for_type
from .event import AnyEventAdapter, Event, OptionFn, Subscriber, TypedEventView
from .event import _matches_type, _type_name
from .listener import Listener, ListenerFunc, Priority
from .manager import Manager
from .util import EventError

_STD = Manager("default")


def std() -> Manager:
    """The default event manager."""
    return _STD


def std_for_type(data_type: Any = None) -> StdManagerAdapter:
    """The default manager seen as a manager for payloads of ``data_type``."""
    return for_type(_STD, data_type)


def config(*option_fns: OptionFn) -> None:
    """Apply option functions to the default manager."""
    _STD.with_options(*option_fns)


# -- listeners


def on(
    name: str,
    listener: Listener,
    priority: int = Priority.NORMAL,
    data_type: Any = None,
) -> None:
    """Register a listener expecting ``data_type`` payloads on the default manager."""
    if listener is None:
        raise EventError(f"event: the event {name!r} listener cannot be empty")
    std_for_type(data_type).on(name, listener, priority)


def on_func(
    name: str,
    fn: Callable[[Event], Any],
    priority: int = Priority.NORMAL,
    data_type: Any = None,
) -> None:
    """Register a plain function as a listener on the default manager."""
    if fn is None:
        raise EventError(f"event: the event {name!r} listener function cannot be None")
    on(name, ListenerFunc(fn), priority, data_type)


def once(
    name: str,
    listener: Listener,
    priority: int = Priority.NORMAL,
    data_type: Any = None,
) -> None:
    """Register a listener that removes itself the first time it runs."""
    if listener is None:
        raise EventError(f"event: the event {name!r} listener cannot be empty")
    std_for_type(data_type).once(name, listener, priority)


def listen(
    name: str,
    listener: Listener,
    priority: int = Priority.NORMAL,
    data_type: Any = None,
) -> None:
    """Alias of ``on``."""
    on(name, listener, priority, data_type)


def _typed(name: str, listener: Listener, data_type: Any) -> Listener:
    if listener is None:
        raise EventError(f"event: the event {name!r} listener cannot be empty")

    def handle(event: Event) -> Any:
        data = event.data
        if not _matches_type(data, data_type):
            raise TypeError(
                f"event: data type mismatch for event '{event.name}'. "
                f"Listener expected type {_type_name(data_type)}, "
                f"but event data is type {type(data).__name__}"
            )
        return listener.handle(TypedEventView(event, data))

    return ListenerFunc(handle)


def add_listeners(
    listeners: dict[str, Listener],
    priority: int = Priority.NORMAL,
    data_type: Any = None,
) -> None:
    """Register several typed listeners on the default manager at once."""
    wrapped = {name: _typed(name, listener, data_type) for name, listener in listeners.items()}
    _STD.add_listeners(wrapped, priority)


def subscribe(manager: Any, subscriber: Subscriber) -> None:
    """Register the listeners a subscriber supplies with ``manager``."""
    manager.subscribe(subscriber)


def has_listeners(name: str) -> bool:
    """Whether the default manager has listeners directly under ``name``."""
    return _STD.has_listeners(name)


# -- firing


def async_fire(event: Event) -> threading.Thread:
    """Dispatch an event on a new thread; return the thread."""
    return _STD.async_fire(AnyEventAdapter(event))


def fire_c(name: str, data: Any = None) -> None:
    """Queue an event by name for the default manager's consumers."""
    _STD.fire_c(name, data)


def fire_async(event: Event) -> None:
    """Queue a ready-made event for the default manager's consumers."""
    _STD.fire_async(AnyEventAdapter(event))


def close_wait() -> None:
    """Close the default manager's channel and wait for queued events."""
    _STD.close_wait()


def fire(name: str, data: Any = None, data_type: Any = None) -> TypedEventView:
    """Fire an event by name and return it as an event of ``data_type``.

    Raises ``TypeError`` when the resulting payload is not of that type.
    """
    return std_for_type(data_type).fire(name, data)


def trigger(name: str, data: Any = None, data_type: Any = None) -> TypedEventView:
    """Alias of ``fire``."""
    return fire(name, data, data_type)


def must_fire(name: str, data: Any = None, data_type: Any = None) -> TypedEventView:
    """Alias of ``fire``; a listener's exception propagates."""
    return fire(name, data, data_type)


def must_trigger(name: str, data: Any = None, data_type: Any = None) -> TypedEventView:
    """Alias of ``must_fire``."""
    return must_fire(name, data, data_type)


def fire_event(event: Event) -> None:
    """Dispatch a ready-made event on the default manager."""
    _STD.fire_event(AnyEventAdapter(event))


def trigger_event(event: Event) -> None:
    """Alias of ``fire_event``."""
    fire_event(event)


def fire_batch(*events: Any) -> list[Exception]:
    """Fire names or events in turn; return the exceptions listeners raised."""
    return _STD.fire_batch(*events)


def reset() -> None:
    """Clear all listeners and pre-defined events of the default manager."""
    _STD.clear()


# -- pre-defined events


def add_event(event: Event) -> None:
    """Register a pre-defined event on the default manager."""
    _STD.add_event(AnyEventAdapter(event))


def add_event_fc(name: str, factory: Callable[[], Event]) -> None:
    """Register an event factory on the default manager."""
    _STD.add_event_fc(name, factory)


def get_event(name: str) -> Event | None:
    """A pre-defined event of the default manager, or ``None``."""
    return _STD.get_event(name)


def has_event(name: str) -> bool:
    """Whether the default manager has a pre-defined event ``name``."""
    return _STD.has_event(name)