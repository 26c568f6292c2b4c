"""Typed views of an untyped event manager.

A ``StdManagerAdapter`` lets listeners that expect one payload type be
registered on a manager that carries payloads of any type. Wrapped
listeners check the payload type before handling an event.
"""

from __future__ import annotations

import typing
from typing import Any, Callable

from .cache import ListenerCache
from .event import AnyEventAdapter, Event, Subscriber, TypedEventView, _matches_type, _type_name
from .listener import Listener, ListenerFunc, ListenerItem, Priority
from .manager import Manager
from .util import EventError, good_name

_NON_NILLABLE = (bool, int, float, complex, str, bytes)


def _is_listener(obj: Any) -> bool:
    return callable(getattr(obj, "handle", None)) and hasattr(obj, "id")


def _is_untyped(data_type: Any) -> bool:
    return data_type is None or data_type is Any or data_type is object


def _cache_key(data_type: Any) -> Any:
    return None if _is_untyped(data_type) else data_type


def _is_non_nillable(data_type: Any) -> bool:
    origin = typing.get_origin(data_type) or data_type
    return isinstance(origin, type) and issubclass(origin, _NON_NILLABLE)


def _wrap(adapter: StdManagerAdapter, listener: Listener, once_name: str | None = None) -> Listener:
    """A listener for any payload that hands matching events to ``listener``.

    With ``once_name`` set, the listener removes itself from that name
    before it first handles an event.
    """
    data_type = adapter.data_type

    def handle(event: Event) -> Any:
        data = event.data
        if not _matches_type(data, data_type):
            raise TypeError(
                f"event: data type mismatch for event '{event.name}'. "
                f"Listener expected type {_type_name(data_type)}, "
                f"but event data is type {type(data).__name__}"
            )
        if once_name is not None:
            adapter.remove_listener(once_name, listener)
        return listener.handle(TypedEventView(event, data))

    return ListenerFunc(handle)


class StdManagerAdapter:
    """Presents an untyped ``Manager`` as a manager for one payload type."""

    def __init__(self, manager: Manager, data_type: Any = None) -> None:
        self.manager = manager
        self.data_type = data_type
        self._once_ids: set[str] = set()

    def __repr__(self) -> str:
        return f"StdManagerAdapter(manager={self.manager.name!r}, data_type={_type_name(self.data_type)})"

    @property
    def _cache(self) -> ListenerCache:
        return self.manager.listener_cache()

    @staticmethod
    def _require(name: str, listener: Any) -> None:
        if listener is None:
            raise EventError(f"event: the event {name!r} listener cannot be empty")
        if not _is_listener(listener):
            raise EventError(
                f"event: {name!r} - listener must have handle() and id, "
                f"got {type(listener).__name__}"
            )

    def _wrapped_for(self, listener: Listener) -> Listener:
        cache = self._cache
        wrapped = cache.get_wrapped(listener.id)
        if wrapped is None or wrapped.id in self._once_ids:
            wrapped = _wrap(self, listener)
            cache.store_wrapped(listener.id, wrapped)
        return wrapped

    def _is_registered(self, wrapped: Listener) -> bool:
        return any(
            item.id == wrapped.id
            for listeners in self.manager.listeners().values()
            for item in listeners
        )

    # -- listeners

    def on(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Register a typed listener; higher priority runs first."""
        self._require(name, listener)
        self.manager.on(name, self._wrapped_for(listener), priority)

    def listen(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Alias of ``on``."""
        self.on(name, listener, priority)

    def add_listener(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Alias of ``on``."""
        self.on(name, listener, priority)

    def once(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Register a typed listener that removes itself the first time it runs."""
        self._require(name, listener)
        key = good_name(name, True)
        wrapped = _wrap(self, listener, once_name=key)
        self._once_ids.add(wrapped.id)
        self._cache.store_wrapped(listener.id, wrapped)
        self.manager.on(key, wrapped, priority)

    def remove_listener(self, name: str, listener: Listener | None) -> None:
        """Remove a typed listener from ``name``, or from every name when empty."""
        if listener is None:
            return
        cache = self._cache
        wrapped = cache.get_wrapped(listener.id)
        if wrapped is None:
            return
        self.manager.remove_listener(name, wrapped)
        if not self._is_registered(wrapped):
            cache.delete_wrapped(listener.id)
            self._once_ids.discard(wrapped.id)

    def remove_listeners(self, name: str) -> None:
        self.manager.remove_listeners(name)

    def has_listeners(self, name: str) -> bool:
        return self.manager.has_listeners(name)

    def listeners_count(self, name: str) -> int:
        return self.manager.listeners_count(name)

    def subscribe(self, subscriber: Subscriber) -> None:
        """Register the typed listeners a subscriber supplies."""
        entries: list[tuple[str, Listener, int]] = []
        for name, spec in subscriber.subscribed_events().items():
            if isinstance(spec, ListenerItem):
                entries.append((name, _wrap(self, spec.listener), spec.priority))
            elif _is_listener(spec):
                entries.append((name, _wrap(self, spec), Priority.NORMAL))
            else:
                raise EventError(
                    f"event: invalid listener type {type(spec).__name__} for event {name!r}"
                )
        for name, wrapped, priority in entries:
            self.manager.on(name, wrapped, priority)

    # -- firing

    def fire(self, name: str, data: Any = None) -> TypedEventView:
        """Fire an event by name and return a typed view of it."""
        event = self.manager.fire(name, data)
        payload = event.data
        if not _matches_type(payload, self.data_type):
            if payload is not None:
                raise TypeError(
                    f"event: type error for event '{event.name}'. Expected data type "
                    f"{_type_name(self.data_type)}, but got {type(payload).__name__}"
                )
            if _is_non_nillable(self.data_type):
                raise TypeError(
                    f"event: type error for event '{event.name}'. Event data is None, "
                    f"but listener expected non-nillable type {_type_name(self.data_type)}"
                )
        return TypedEventView(event, payload)

    def trigger(self, name: str, data: Any = None) -> TypedEventView:
        """Alias of ``fire``."""
        return self.fire(name, data)

    def must_fire(self, name: str, data: Any = None) -> TypedEventView:
        """Alias of ``fire``; a listener's exception propagates."""
        return self.fire(name, data)

    def must_trigger(self, name: str, data: Any = None) -> TypedEventView:
        """Alias of ``fire``."""
        return self.fire(name, data)

    def fire_typed(self, name: str, data: Any) -> TypedEventView:
        """Fire with payload checks; see the module-level ``fire_typed``."""
        return fire_typed(self.manager, name, data, self.data_type)

    def fire_event(self, event: Event) -> None:
        """Dispatch a ready-made typed event."""
        self.manager.fire_event(AnyEventAdapter(event, self.data_type))

    def trigger_event(self, event: Event) -> None:
        """Alias of ``fire_event``."""
        self.fire_event(event)

    def fire_batch(self, *events: Any) -> list[Exception]:
        """Fire names or events in turn; return the exceptions listeners raised."""
        converted = [
            AnyEventAdapter(item, self.data_type) if isinstance(item, Event) else item
            for item in events
        ]
        return self.manager.fire_batch(*converted)

    def fire_c(self, name: str, data: Any = None) -> None:
        """Queue an event by name for the background consumers."""
        self.manager.fire_c(name, data)

    def fire_async(self, event: Event) -> None:
        """Queue a typed event for the background consumers."""
        self.manager.fire_async(AnyEventAdapter(event, self.data_type))

    def async_fire(self, event: Event) -> Any:
        """Dispatch a typed event on a new thread; return the thread."""
        return self.manager.async_fire(AnyEventAdapter(event, self.data_type))

    def await_fire(self, event: Event) -> None:
        """Dispatch a typed event on a new thread and wait for it."""
        self.manager.await_fire(AnyEventAdapter(event, self.data_type))

    def close(self) -> None:
        self.manager.close()

    def close_wait(self) -> None:
        self.manager.close_wait()

    # -- pre-defined events

    def add_event(self, event: Event) -> None:
        """Register a pre-defined typed event."""
        self.manager.add_event(AnyEventAdapter(event, self.data_type))

    def add_event_fc(self, name: str, factory: Callable[[], Event]) -> None:
        """Register a factory of typed events for ``name``."""
        data_type = self.data_type
        self.manager.add_event_fc(name, lambda: AnyEventAdapter(factory(), data_type))

    def get_event(self, name: str) -> Event | None:
        """The pre-defined event as a typed event, or ``None``."""
        event = self.manager.get_event(name)
        if event is None:
            return None
        if isinstance(event, AnyEventAdapter):
            return event.original
        if not _matches_type(event.data, self.data_type):
            return None
        return TypedEventView(event, event.data)

    def has_event(self, name: str) -> bool:
        return self.manager.has_event(name)

    def remove_event(self, name: str) -> None:
        self.manager.remove_event(name)

    def remove_events(self) -> None:
        self.manager.remove_events()

    def reset(self) -> None:
        self.manager.reset()


def _resolve_manager(manager: Any) -> Manager:
    if isinstance(manager, Manager):
        return manager
    if isinstance(manager, StdManagerAdapter):
        return manager.manager
    raise EventError("event: requires a Manager or a StdManagerAdapter")


def for_type(manager: Any, data_type: Any = None) -> StdManagerAdapter:
    """The typed adapter of ``manager`` for ``data_type``, created once per type."""
    mgr = _resolve_manager(manager)
    cache = mgr.adapter_cache()
    key = _cache_key(data_type)
    adapter = cache.get(key)
    if adapter is None:
        adapter = StdManagerAdapter(mgr, data_type)
        cache[key] = adapter
    return adapter


def on_typed(
    manager: Any,
    name: str,
    listener: Listener,
    data_type: Any = None,
    priority: int = Priority.NORMAL,
) -> None:
    """Register a listener that expects payloads of ``data_type``."""
    if listener is None:
        raise EventError(f"event: the event {name!r} listener cannot be empty")
    for_type(manager, data_type).on(name, listener, priority)


def remove_typed_listener(manager: Any, name: str, listener: Listener, data_type: Any = None) -> None:
    """Remove a listener registered with ``on_typed``."""
    for_type(manager, data_type).remove_listener(name, listener)


def fire_typed(manager: Any, name: str, data: Any, data_type: Any = None) -> TypedEventView:
    """Fire an event and return it as a typed event.

    Raises ``TypeError`` when the resulting payload is not of ``data_type``.
    """
    mgr = _resolve_manager(manager)
    event = mgr.fire(name, data)
    payload = event.data
    if not _matches_type(payload, data_type):
        raise TypeError(
            f"event: data type mismatch after firing event '{event.name}'. "
            f"Expected {_type_name(data_type)}, got {type(payload).__name__}"
        )
    return TypedEventView(event, payload)