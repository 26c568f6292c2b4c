"""A minimal name-keyed event manager with positional event data."""

from __future__ import annotations

from typing import Any, Callable

from .util import EventError

WILDCARD = "*"


class EventData:
    """The event passed to simple handlers."""

    __slots__ = ("name", "data", "_aborted")

    def __init__(self, name: str, data: list[Any] | None = None) -> None:
        self.name = name
        self.data: list[Any] = list(data) if data is not None else []
        self._aborted = False

    def abort(self) -> None:
        """Stop calling further handlers for this event."""
        self._aborted = True

    @property
    def aborted(self) -> bool:
        return self._aborted


Handler = Callable[[EventData], Any]


def _func_name(handler: Handler) -> str:
    qualname = getattr(handler, "__qualname__", None)
    if qualname is None:
        return repr(handler)
    module = getattr(handler, "__module__", None)
    return f"{module}.{qualname}" if module else qualname


class EventManager:
    """Keeps handlers per event name and calls them in registration order.

    A handler reports failure by raising; dispatch stops at the first
    failure or once the event is aborted.
    """

    def __init__(self) -> None:
        self._names: dict[str, int] = {}
        self._handlers: dict[str, list[Handler]] = {}

    def on(self, name: str, handler: Handler) -> None:
        """Register a handler for an event name."""
        name = name.strip()
        if not name:
            raise EventError("event name cannot be empty")
        self._names[name] = self._names.get(name, 0) + 1
        self._handlers.setdefault(name, []).append(handler)

    def fire(self, name: str, *args: Any) -> Exception | None:
        """Call the handlers of ``name``; return the exception a handler raised, if any.

        Wildcard handlers run after the named ones, but only when the name
        itself has handlers.
        """
        handlers = self._handlers.get(name)
        if handlers is None:
            return None
        event = EventData(name, list(args))
        try:
            self._call_handlers(event, handlers)
            if not event.aborted and self.has_event(WILDCARD):
                self._call_handlers(event, self._handlers[WILDCARD])
        except Exception as exc:
            return exc
        return None

    def must_fire(self, name: str, *args: Any) -> None:
        """Like ``fire`` but raise the handler's exception."""
        error = self.fire(name, *args)
        if error is not None:
            raise error

    @staticmethod
    def _call_handlers(event: EventData, handlers: list[Handler]) -> None:
        for handler in list(handlers):
            handler(event)
            if event.aborted:
                return

    def has_event(self, name: str) -> bool:
        return name in self._names

    def handlers_for(self, name: str) -> list[Handler]:
        return list(self._handlers.get(name, []))

    def handlers(self) -> dict[str, list[Handler]]:
        return {name: list(hs) for name, hs in self._handlers.items()}

    def names(self) -> dict[str, int]:
        return dict(self._names)

    def __str__(self) -> str:
        lines = []
        for name, hs in self._handlers.items():
            lines.append(name + " handlers:\n " + "".join(_func_name(h) for h in hs) + "\n")
        return "".join(lines)

    def clear_handlers(self, name: str) -> bool:
        """Drop all handlers of ``name``; report whether there were any."""
        if name not in self._names:
            return False
        del self._names[name]
        self._handlers.pop(name, None)
        return True

    def clear(self) -> None:
        self._names = {}
        self._handlers = {}


DEFAULT_EM = EventManager()


def on(name: str, handler: Handler) -> None:
    """Register a handler on the default manager."""
    DEFAULT_EM.on(name, handler)


def has(name: str) -> bool:
    """Check whether the default manager has handlers for ``name``."""
    return DEFAULT_EM.has_event(name)


def fire(name: str, *args: Any) -> Exception | None:
    """Fire an event on the default manager."""
    return DEFAULT_EM.fire(name, *args)


def must_fire(name: str, *args: Any) -> None:
    """Fire an event on the default manager, raising on handler failure."""
    DEFAULT_EM.must_fire(name, *args)