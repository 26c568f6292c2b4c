"""The event manager: listener registry, dispatch and pre-defined events."""

from __future__ import annotations

import queue
import threading
from contextlib import nullcontext, suppress
from typing import Any, Callable

from .cache import ListenerCache
from .event import (
    DEFAULT_CHANNEL_SIZE,
    DEFAULT_CONSUMER_NUM,
    BasicEvent,
    Event,
    MatchMode,
    OptionFn,
    Options,
    Subscriber,
)
from .listener import Listener, ListenerFunc, ListenerItem, ListenerQueue, Priority
from .util import WILDCARD, EventError, good_name, match_node_path

FactoryFunc = Callable[[], Event]

_STOP = object()


def _is_zero(data: Any) -> bool:
    """Whether ``data`` is an empty scalar that should not replace pre-defined data."""
    if data is None:
        return True
    if isinstance(data, (bool, int, float, complex, str, bytes)):
        return not data
    return False


def _is_listener(obj: Any) -> bool:
    return callable(getattr(obj, "handle", None)) and hasattr(obj, "id")


def _as_listener(name: str, spec: Any) -> tuple[Listener, int]:
    """Turn a subscriber's entry into a listener and its priority."""
    if isinstance(spec, ListenerItem):
        return spec.listener, spec.priority
    if _is_listener(spec):
        return spec, Priority.NORMAL
    if callable(spec):
        return ListenerFunc(spec), Priority.NORMAL
    raise EventError(
        f"event: invalid listener type {type(spec).__name__} for event {name!r}: "
        "unsupported listener type"
    )


class Manager:
    """Registers listeners by event name and dispatches events to them.

    Listeners report failure by raising; dispatch stops at the first
    failure, which propagates to the caller, or once the event is aborted.
    """

    def __init__(self, name: str, *option_fns: OptionFn) -> None:
        self.name = name
        self.options = Options()
        self._lock = threading.RLock()
        self._async_lock = threading.Lock()
        self._queue: queue.Queue[Any] | None = None
        self._consumers: list[threading.Thread] = []
        self._closed = False
        self._event_fc: dict[str, FactoryFunc] = {}
        self._listeners: dict[str, ListenerQueue] = {}
        self._listened_names: dict[str, int] = {}
        self._adapter_cache: dict[Any, Any] = {}
        self._listener_cache = ListenerCache()
        self.with_options(*option_fns)

    def with_options(self, *option_fns: OptionFn) -> Manager:
        """Apply option functions to this manager's options."""
        for apply in option_fns:
            apply(self.options)
        return self

    # -- registering listeners

    def on(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Register a listener; higher priority runs first."""
        if listener is None:
            raise EventError(f"event: the event {name!r} listener cannot be empty")
        if not _is_listener(listener):
            raise EventError(
                f"event: {name!r} - listener must have handle() and id, "
                f"got {type(listener).__name__}"
            )
        self._add_item(name, ListenerItem(listener, priority))

    def listen(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Alias of ``on``."""
        self.on(name, listener, priority)

    def add_listener(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Alias of ``on``."""
        self.on(name, listener, priority)

    def once(self, name: str, listener: Listener, priority: int = Priority.NORMAL) -> None:
        """Register a listener that removes itself the first time it runs."""
        if listener is None:
            raise EventError(f"event: the event {name!r} listener cannot be empty")
        key = good_name(name, True)

        def handle(event: Event) -> Any:
            self.remove_listener(key, wrapper)
            return listener.handle(event)

        wrapper = ListenerFunc(handle)
        self.on(key, wrapper, priority)

    def add_listeners(
        self, listeners: dict[str, Listener], priority: int = Priority.NORMAL
    ) -> None:
        """Register several listeners, all with the same priority."""
        for name, listener in listeners.items():
            if listener is None:
                raise EventError(f"event: the event {name!r} listener cannot be empty")
            self._add_item(name, ListenerItem(listener, priority))

    def _add_item(self, name: str, item: ListenerItem) -> None:
        name = good_name(name, True)
        existing = self._listeners.get(name)
        if existing is None:
            self._listened_names[name] = 1
            self._listeners[name] = ListenerQueue().push(item)
        else:
            existing.push(item)

    # -- firing

    def fire(self, name: str, data: Any = None) -> Event:
        """Fire an event by name and return the event that was dispatched."""
        event = self._fire_by_name(name, data, use_queue=False)
        assert event is not None
        return event

    def trigger(self, name: str, data: Any = None) -> Event:
        """Alias of ``fire``."""
        return self.fire(name, data)

    def must_fire(self, name: str, data: Any = None) -> Event:
        """Alias of ``fire``; a listener's exception propagates."""
        return self.fire(name, data)

    def must_trigger(self, name: str, data: Any = None) -> Event:
        """Alias of ``fire``."""
        return self.fire(name, data)

    def fire_c(self, name: str, data: Any = None) -> None:
        """Queue an event by name for the background consumers."""
        self._fire_by_name(name, data, use_queue=True)

    def _fire_by_name(self, name: str, data: Any, use_queue: bool) -> Event | None:
        name = good_name(name, False)
        factory = self._event_fc.get(name)
        if factory is not None:
            event = factory()
            if not _is_zero(data):
                with suppress(TypeError):
                    event.data = data
        else:
            event = BasicEvent(name, data)

        if use_queue:
            self.fire_async(event)
            return None
        self.fire_event(event)
        return event

    def fire_event(self, event: Event) -> None:
        """Dispatch a ready-made event to the matching listeners."""
        guard = self._lock if self.options.enable_lock else nullcontext()
        with guard:
            event.abort(False)
            name = event.name

            if self.options.match_mode == MatchMode.PATH:
                self._fire_path_mode(name, event)
                return

            if self._fire_simple_mode(name, event):
                return

            wildcard = self._listeners.get(WILDCARD)
            if wildcard is not None:
                self._dispatch(wildcard, event)

    def trigger_event(self, event: Event) -> None:
        """Alias of ``fire_event``."""
        self.fire_event(event)

    @staticmethod
    def _dispatch(listeners: ListenerQueue, event: Event) -> bool:
        """Call listeners by priority; return True once the event is aborted."""
        for item in listeners.sort().items():
            item.listener.handle(event)
            if event.aborted:
                return True
        return False

    def _fire_simple_mode(self, name: str, event: Event) -> bool:
        direct = self._listeners.get(name)
        if direct is not None and self._dispatch(direct, event):
            return True

        pos = name.rfind(".")
        if pos > 0:
            group = self._listeners.get(name[: pos + 1] + WILDCARD)
            if group is not None and self._dispatch(group, event):
                return True
        return False

    def _fire_path_mode(self, name: str, event: Event) -> None:
        for pattern, listeners in list(self._listeners.items()):
            if pattern == name or match_node_path(pattern, name, "."):
                if self._dispatch(listeners, event):
                    return

    # -- background dispatch

    def _ensure_consumers(self) -> queue.Queue[Any]:
        with self._async_lock:
            if self._queue is not None:
                if self._closed:
                    raise EventError("event: cannot fire on a closed event channel")
                return self._queue

            if self.options.consumer_num <= 0:
                self.options.consumer_num = DEFAULT_CONSUMER_NUM
            if self.options.channel_size <= 0:
                self.options.channel_size = DEFAULT_CHANNEL_SIZE

            channel: queue.Queue[Any] = queue.Queue(maxsize=self.options.channel_size)
            self._consumers = [
                threading.Thread(target=self._consume, args=(channel,), daemon=True)
                for _ in range(self.options.consumer_num)
            ]
            for thread in self._consumers:
                thread.start()
            self._queue = channel
            return channel

    def _consume(self, channel: queue.Queue[Any]) -> None:
        while True:
            event = channel.get()
            if event is _STOP:
                return
            with suppress(Exception):
                self.fire_event(event)

    def fire_async(self, event: Event) -> None:
        """Queue an event for the background consumers.

        Call ``close_wait`` once all events are queued.
        """
        self._ensure_consumers().put(event)

    def async_fire(self, event: Event) -> threading.Thread:
        """Dispatch an event on a new thread, ignoring failures; return the thread."""

        def run() -> None:
            with suppress(Exception):
                self.fire_event(event)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        return thread

    def await_fire(self, event: Event) -> None:
        """Dispatch an event on a new thread and wait; re-raise its failure."""
        failures: list[BaseException] = []

        def run() -> None:
            try:
                self.fire_event(event)
            except BaseException as exc:  # handed back to the caller
                failures.append(exc)

        thread = threading.Thread(target=run)
        thread.start()
        thread.join()
        if failures:
            raise failures[0]

    def close(self) -> None:
        """Stop accepting queued events; consumers finish what is queued."""
        with self._async_lock:
            if self._queue is None or self._closed:
                return
            self._closed = True
            channel = self._queue
            count = len(self._consumers)
        for _ in range(count):
            channel.put(_STOP)

    def wait(self) -> None:
        """Block until all consumers have finished."""
        with self._async_lock:
            consumers = list(self._consumers)
        for thread in consumers:
            thread.join()

    def close_wait(self) -> None:
        """Close the event channel and wait for queued events to be handled."""
        self.close()
        self.wait()

    def fire_batch(self, *events: Any) -> list[Exception]:
        """Fire names or events in turn; return the exceptions listeners raised."""
        errors: list[Exception] = []
        for item in events:
            if isinstance(item, str):
                good_name(item, False)
                try:
                    self.fire(item, None)
                except Exception as exc:
                    errors.append(exc)
            elif isinstance(item, Event):
                try:
                    self.fire_event(item)
                except Exception as exc:
                    errors.append(exc)
        return errors

    # -- pre-defined events

    def add_event(self, event: Event) -> None:
        """Register a pre-defined event; cloneable events are cloned per fire."""
        name = good_name(event.name, False)
        clone = getattr(event, "clone", None)
        if callable(clone):
            self.add_event_fc(name, clone)
        else:
            self.add_event_fc(name, lambda: event)

    def add_event_fc(self, name: str, factory: FactoryFunc) -> None:
        """Register a factory that builds the event for ``name``."""
        with self._lock:
            self._event_fc[name] = factory

    def get_event(self, name: str) -> Event | None:
        """A new instance of the pre-defined event, or ``None``."""
        factory = self._event_fc.get(name)
        return factory() if factory is not None else None

    def has_event(self, name: str) -> bool:
        return name in self._event_fc

    def remove_event(self, name: str) -> None:
        self._event_fc.pop(name, None)

    def remove_events(self) -> None:
        self._event_fc = {}

    # -- inspecting and removing listeners

    def has_listeners(self, name: str) -> bool:
        """Whether listeners are registered directly under ``name``."""
        return name in self._listened_names

    def listeners(self) -> dict[str, ListenerQueue]:
        return dict(self._listeners)

    def listeners_by_name(self, name: str) -> ListenerQueue | None:
        return self._listeners.get(name)

    def listeners_count(self, name: str) -> int:
        listeners = self._listeners.get(name)
        return len(listeners) if listeners is not None else 0

    def listened_names(self) -> dict[str, int]:
        return dict(self._listened_names)

    def remove_listener(self, name: str, listener: Listener | None) -> None:
        """Remove a listener from ``name``, or from every name when ``name`` is empty."""
        if listener is None:
            return
        names = [name] if name else list(self._listeners)
        for key in names:
            listeners = self._listeners.get(key)
            if listeners is None:
                continue
            listeners.remove(listener)
            if not len(listeners):
                del self._listeners[key]
                self._listened_names.pop(key, None)

    def remove_listeners(self, name: str) -> None:
        """Remove every listener registered under ``name``."""
        if name not in self._listened_names:
            return
        listeners = self._listeners.pop(name, None)
        if listeners is not None:
            listeners.clear()
        del self._listened_names[name]

    def subscribe(self, subscriber: Subscriber) -> None:
        """Register every listener a subscriber supplies."""
        for name, spec in subscriber.subscribed_events().items():
            listener, priority = _as_listener(name, spec)
            self.on(name, listener, priority)

    def adapter_cache(self) -> dict[Any, Any]:
        """Per-manager storage for typed adapters."""
        return self._adapter_cache

    def listener_cache(self) -> ListenerCache:
        """Mapping from original listener ids to wrapped listeners."""
        return self._listener_cache

    def clear(self) -> None:
        """Alias of ``reset``."""
        self.reset()

    def reset(self) -> None:
        """Drop all listeners, pre-defined events and background consumers."""
        with self._async_lock:
            channel = self._queue if not self._closed else None
            count = len(self._consumers)
            self._queue = None
            self._consumers = []
            self._closed = False
        if channel is not None:
            for _ in range(count):
                channel.put(_STOP)

        for listeners in self._listeners.values():
            listeners.clear()
        self._event_fc = {}
        self._listeners = {}
        self._listened_names = {}
        self._listener_cache.clear()