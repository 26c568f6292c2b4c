# eventhub

A lightweight, in-process event manager and dispatcher. Register listeners on
event names with priorities, fire events by name or as prepared instances,
group listeners with wildcard patterns, and dispatch events on background
threads.

## Installation

```
pip install eventhub
```

## Quick start

```python
from eventhub.manager import Manager
from eventhub.listener import ListenerFunc, Priority

em = Manager("app")

def on_user_created(event):
    print("created", event.data["id"])

em.on("user.created", ListenerFunc(on_user_created), Priority.HIGH)
em.on("user.*", ListenerFunc(lambda e: print("user group:", e.name)))

event = em.fire("user.created", {"id": 1001})
```

`fire` returns the event that was dispatched. Listeners run from highest to
lowest priority (`Priority.MIN` … `Priority.MAX`, or any integer). A listener
reports failure by raising: dispatch stops and the exception propagates out of
`fire`. A listener may call `event.abort()` to stop the remaining listeners.

A listener is any object with a `handle(event)` method and an `id` attribute;
`eventhub.listener.ListenerFunc` wraps a plain callable and gives it a unique
id. Registering the same listener (same id) twice under one name has no effect.
`Manager.once` registers a listener that removes itself when it first runs,
and `Manager.remove_listener(name, listener)` removes one (an empty name
removes it from every name).

## Events

`eventhub.event.BasicEvent` carries a `name`, a `data` payload, a `target` and
an abort flag. When the payload is a `dict`, `get(key)` and `set(key, value)`
read and write it.

```python
from eventhub.event import BasicEvent

evt = BasicEvent("order.paid", {"amount": 10})
em.add_event(evt)     # pre-defined: fired by name, a clone is dispatched
em.fire_event(evt)    # dispatch this very instance
```

`fire_batch(*items)` fires names and event instances in turn and returns the
list of exceptions listeners raised.

## Matching modes

By default (`MatchMode.SIMPLE`) a listener on `"app.*"` receives every event
named `"app.<x>"`, and a listener on `"*"` receives all events after the
named and group listeners. Path mode gives finer patterns:

```python
from eventhub.event import use_path_mode, enable_lock
from eventhub.manager import Manager

em = Manager("db", use_path_mode, enable_lock(True))
# "db.user.*"   matches "db.user.add"
# "db.**"       matches anything starting with "db."
# "**.add"      matches anything ending with ".add"
```

Event names must start with a letter and contain only letters, digits, `_`,
`-`, `.` and `*`; invalid names raise `eventhub.util.EventError`.

## Background dispatch

`fire_c(name, data)` and `fire_async(event)` put events on a queue served by a
pool of consumer threads (sizes from `Options.consumer_num` and
`Options.channel_size`); call `close_wait()` once all events are queued.
Failures in queued events are ignored. `async_fire(event)` dispatches one event
on a new thread and returns that thread; `await_fire(event)` does the same and
waits, re-raising any failure.

## Subscribers

Subclass `eventhub.event.Subscriber` and return a mapping of event names to
listeners, `ListenerItem`s (listener plus priority) or plain callables from
`subscribed_events()`, then pass it to `Manager.subscribe`.

## The default manager and typed listeners

`eventhub.std` holds a process-wide manager with module-level functions such
as `on`, `once`, `listen`, `fire`, `fire_event`, `fire_batch`, `has_listeners`,
`add_event`, `get_event` and `reset`. These accept a `data_type`: listeners
registered with one only receive events whose payload is of that type, and
`fire` raises `TypeError` when the payload does not match.

```python
from eventhub import std
from eventhub.listener import ListenerFunc

std.on("greet", ListenerFunc(lambda e: print(e.data.upper())), data_type=str)
std.fire("greet", "hello", data_type=str)
std.reset()
```

`eventhub.adapter` provides the same for any manager: `for_type(manager,
data_type)` returns a `StdManagerAdapter`, and `on_typed`,
`remove_typed_listener` and `fire_typed` work on a given manager.
`eventhub.convert` has `convert_data`, `convert_event` and `convert_listener`
for checking payloads against a type.

## Simple manager

`eventhub.simple` offers a minimal manager whose handlers receive an
`EventData` holding the positional arguments given to `fire`. Handlers run in
registration order; `fire` returns the exception a handler raised, or `None`,
and `must_fire` raises it.

```python
from eventhub import simple

simple.on("ping", lambda e: print(e.name, e.data))
simple.fire("ping", 1, 2)
```

## What it does not do

Everything happens inside one process: there is no command-line tool, no
network transport between processes and no persistence of events or
listeners.