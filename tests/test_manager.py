import itertools
import threading

import pytest

from eventhub.event import BasicEvent, Event, MatchMode, Subscriber, enable_lock, use_path_mode
from eventhub.listener import Listener, ListenerFunc, ListenerItem, Priority
from eventhub.manager import Manager
from eventhub.util import EventError

_ids = itertools.count(1)


class RecordingListener(Listener):
    def __init__(self, user_data):
        self.user_data = user_data
        self.counter = 0
        self._id = f"recording_{user_data}_{next(_ids)}"

    @property
    def id(self):
        return self._id

    def handle(self, event):
        self.counter += 1
        result = event.data.get("result") if event.data else None
        if result is not None:
            event.data = {"result": f"{result} -> {event.name}({self.user_data})"}
        else:
            event.data = {"result": f"handled: {event.name}({self.user_data})"}


class PlainEvent(Event):
    def __init__(self, name, data):
        self._name = name
        self._data = data
        self._aborted = False
        self._props = {}

    @property
    def name(self):
        return self._name

    @property
    def data(self):
        return self._data

    @data.setter
    def data(self, value):
        self._data = value

    def abort(self, flag=True):
        self._aborted = flag

    @property
    def aborted(self):
        return self._aborted

    def get(self, key):
        return self._props.get(key)

    def set(self, key, value):
        self._props[key] = value
        return self


def _fail(event):
    raise RuntimeError("an error")


class GoodSubscriber(Subscriber):
    def subscribed_events(self):
        def e1(event):
            event.data = {"e1-key": "val1"}

        return {
            "e1": ListenerFunc(e1),
            "e2": ListenerItem(ListenerFunc(_fail), Priority.ABOVE_NORMAL),
            "e3": RecordingListener(""),
        }


class BadSubscriber(Subscriber):
    def subscribed_events(self):
        return {"e1": "invalid"}


def writer(buf, text):
    def handle(event):
        buf.append(text)

    return ListenerFunc(handle)


def test_fire_event_runs_by_priority():
    em = Manager("test")
    em.options.enable_lock = True
    e1 = BasicEvent("e1", {})
    em.add_event(e1)

    em.on("e1", RecordingListener("HI"), Priority.MIN)
    em.on("e1", RecordingListener("WEL"), Priority.HIGH)
    em.add_listener("e1", RecordingListener("COM"), Priority.BELOW_NORMAL)

    em.fire_event(e1)
    assert e1.data["result"] == "handled: e1(WEL) -> e1(COM) -> e1(HI)"

    e1.name = "e2"
    em.fire_event(e1)
    assert e1.data["result"] == "handled: e1(WEL) -> e1(COM) -> e1(HI)"


def test_fire_event_then_wildcard():
    buf = []
    mgr = Manager("test")
    evt1 = BasicEvent("evt1", {}).fill(None, {"n": "inhere"})
    mgr.add_event(evt1)

    assert mgr.has_event("evt1")
    assert not mgr.has_event("not-exist")

    def handle(event):
        buf.append(f"event: {event.name}, params: n={event.data['n']}")

    mgr.on("evt1", ListenerFunc(handle), Priority.NORMAL)
    assert mgr.has_listeners("evt1")
    assert not mgr.has_listeners("not-exist")

    mgr.fire_event(evt1)
    assert "".join(buf) == "event: evt1, params: n=inhere"
    buf.clear()

    mgr.on("*", writer(buf, "|Wildcard handler"))
    mgr.fire_event(evt1)
    assert "".join(buf) == "event: evt1, params: n=inhere|Wildcard handler"


def test_async_fire():
    em = Manager("test")
    seen = []

    def on_e1(event):
        seen.append(dict(event.data))
        event.set("nk", "nv")

    em.on("e1", ListenerFunc(on_e1))
    e1 = BasicEvent("e1", {"k": "v"})
    em.async_fire(e1).join(timeout=5)
    assert seen == [{"k": "v"}]
    assert e1.get("nk") == "nv"

    got = []
    done = threading.Event()

    def on_e2(event):
        got.append(event.get("k"))
        done.set()

    em.on("e2", ListenerFunc(on_e2))
    e1.name = "e2"
    em.async_fire(e1)
    assert done.wait(5)
    assert got == ["v"]


def test_await_fire():
    em = Manager("test")
    seen = []

    def handle(event):
        seen.append(dict(event.data))
        event.data = {"nk": "nv"}

    em.on("e1", ListenerFunc(handle))
    e1 = BasicEvent("e1", {"k": "v"})
    em.await_fire(e1)
    assert seen == [{"k": "v"}]
    assert e1.data["nk"] == "nv"


def test_await_fire_reraises():
    em = Manager("test")
    em.on("e1", ListenerFunc(_fail))
    with pytest.raises(RuntimeError, match="an error"):
        em.await_fire(BasicEvent("e1", {}))


def test_subscribe():
    em = Manager("test")
    em.subscribe(GoodSubscriber())

    assert em.has_listeners("e1")
    assert em.has_listeners("e2")
    assert em.has_listeners("e3")

    errors = em.fire_batch("e1", BasicEvent("e2", None))
    assert len(errors) == 1
    assert str(errors[0]) == "an error"

    with pytest.raises(EventError):
        em.subscribe(BadSubscriber())


def test_subscribe_accepts_callables():
    class FuncSubscriber(Subscriber):
        def subscribed_events(self):
            return {"x": lambda event: event.set("hit", True)}

    em = Manager("test")
    em.subscribe(FuncSubscriber())
    event = em.fire("x", {})
    assert event.get("hit") is True


def test_listen_group_event():
    em = Manager("test")
    buf = []
    e1 = BasicEvent("app.evt1", {"buf": buf})
    e1.attach_to(em)

    def first(event):
        buf.append("Hi > 1 " + event.name)

    def second(event):
        buf.append(" > 2 " + event.name)

    def third(event):
        buf.append(" > 3 " + event.name)

    l2 = ListenerFunc(second)
    l3 = ListenerFunc(third)
    em.on("app.evt1", ListenerFunc(first))
    em.on("app.*", l2)
    em.on("*", l3)

    e = em.fire("app.evt1", None)
    assert e.name == "app.evt1"
    assert e.data is e1.data
    assert "".join(buf) == "Hi > 1 app.evt1 > 2 app.evt1 > 3 app.evt1"

    em.remove_listener("app.*", l2)
    assert len(em.listened_names()) == 2
    em.on("app.*", ListenerFunc(_fail))

    buf.clear()
    with pytest.raises(RuntimeError):
        em.fire("app.evt1", {})
    assert "".join(buf) == "Hi > 1 app.evt1"

    em.remove_listeners("app.*")
    em.remove_listener("", l3)
    em.on("app.*", l2)
    em.on("*", ListenerFunc(_fail))
    assert len(em.listened_names()) == 3

    buf.clear()
    with pytest.raises(RuntimeError):
        em.trigger("app.evt1", None)
    assert "".join(buf) == "Hi > 1 app.evt1 > 2 app.evt1"

    em.remove_listener("", None)
    assert len(em.listened_names()) == 3

    em.clear()
    assert em.listened_names() == {}


def test_fire_with_wildcard_group():
    buf = []
    mgr = Manager("test")
    name = "kapal.furcas.ticket.create"

    def handle(event):
        buf.append(f"{event.name}-{event.data['user']}|")

    handler = ListenerFunc(handle)
    mgr.on("kapal.furcas.ticket.*", handler)
    mgr.on(name, handler)

    event = mgr.fire(name, {"user": "inhere"})
    assert event.name == name
    assert event.data == {"user": "inhere"}
    assert "".join(buf) == (
        "kapal.furcas.ticket.create-inhere|kapal.furcas.ticket.create-inhere|"
    )
    buf.clear()

    mgr.on("*", handler)
    event = mgr.trigger(name, {"user": "inhere"})
    assert event.name == name
    assert len(mgr.listened_names()) == 3
    assert "".join(buf) == (
        "kapal.furcas.ticket.create-inhere|"
        "kapal.furcas.ticket.create-inhere|"
        "kapal.furcas.ticket.create-inhere|"
    )


def test_fire_use_path_mode():
    buf = []
    em = Manager("test", use_path_mode, enable_lock(True))
    em.listen("db.user.*", writer(buf, "db.user.*|"))
    em.listen("db.**", writer(buf, "db.**|"), 1)
    em.listen("db.user.add", writer(buf, "db.user.add|"), 2)
    assert em.has_listeners("db.user.*")

    e = em.fire("db.user.add", {"user": "inhere"})
    assert e.name == "db.user.add"
    assert e.data["user"] == "inhere"
    text = "".join(buf)
    assert "db.**|" in text
    assert "db.user.*|" in text
    assert "db.user.add|" in text
    assert text.count("|") == 3
    buf.clear()

    e = em.fire("db.user.del", {"user": "inhere"})
    assert e.data["user"] == "inhere"
    text = "".join(buf)
    assert "db.**|" in text
    assert "db.user.*|" in text
    assert text.count("|") == 2
    buf.clear()

    em.remove_listeners("db.user.*")
    assert not em.has_listeners("db.user.*")

    em.listen("*", writer(buf, "*|"), 3)
    em.listen("db.*.update", writer(buf, "db.*.update|"), 4)

    e = em.fire("db.user.update", {"user": "inhere"})
    assert e.data["user"] == "inhere"
    text = "".join(buf)
    assert "*|" in text
    assert "db.**|" in text
    assert "db.*.update|" in text
    assert text.count("|") == 3
    buf.clear()

    e = em.fire("not-exist", {"user": "inhere"})
    assert e.data["user"] == "inhere"
    assert "".join(buf) == "*|"


def test_fire_all_node_prefix():
    em = Manager("test", use_path_mode, enable_lock(False))
    buf = []
    em.listen("**.add", writer(buf, "**.add|"))

    e = em.trigger("db.user.add", {"user": "inhere"})
    assert e.data["user"] == "inhere"
    assert "".join(buf) == "**.add|"


def test_fire_c():
    em = Manager("test", use_path_mode, enable_lock(True))
    buf = []
    em.listen("db.user.*", writer(buf, "db.user.*|"))
    em.listen("db.**", writer(buf, "db.**|"), 1)
    em.listen("db.user.add", writer(buf, "db.user.add|"), 2)
    assert em.has_listeners("db.user.*")

    em.fire_c("db.user.add", {"user": "inhere"})
    em.close_wait()

    text = "".join(buf)
    assert "db.**|" in text
    assert "db.user.*|" in text
    assert "db.user.add|" in text
    assert text.count("|") == 3


def test_fire_c_with_zero_consumers_uses_defaults():
    def zero(options):
        options.channel_size = 0
        options.consumer_num = 0

    em = Manager("test", zero)
    em.fire_c("not-exist", {"user": "inhere"})
    em.close_wait()
    assert em.options.consumer_num == 3
    assert em.options.channel_size == 100


def test_wait():
    em = Manager("test", use_path_mode)
    buf = []
    done = threading.Event()

    def handle(event):
        buf.append("db.user.*|")
        done.set()

    em.listen("db.user.*", ListenerFunc(handle))
    assert em.has_listeners("db.user.*")

    em.fire_c("db.user.add", {"user": "inhere"})
    assert done.wait(5)
    em.close_wait()
    assert "".join(buf) == "db.user.*|"


def test_fire_async_after_close_raises():
    em = Manager("test")
    em.fire_async(BasicEvent("a", None))
    em.close_wait()
    with pytest.raises(EventError):
        em.fire_async(BasicEvent("a", None))


def test_once():
    em = Manager("test")
    calls = []
    em.once("evt1", ListenerFunc(lambda event: calls.append(event.name)))
    assert em.has_listeners("evt1")
    em.trigger("evt1", {})
    assert not em.has_listeners("evt1")
    em.trigger("evt1", {})
    assert calls == ["evt1"]


def test_issue_9_remove_only_one():
    bus = Manager("")

    def make(value):
        def handle(event):
            event.data = {"val": value}

        return ListenerFunc(handle)

    f1 = make(11)
    f2 = make(22)
    bus.on("evt1", f1)
    bus.on("evt1", f2)
    assert bus.listeners_count("evt1") == 2

    f3 = ListenerFunc(lambda event: None)
    bus.on("evt1", f3)
    assert bus.listeners_count("evt1") == 3

    bus.remove_listener("evt1", f1)
    assert bus.listeners_count("evt1") == 2

    event = bus.must_fire("evt1", {"arg0": "val0", "arg1": "val1"})
    assert event.data == {"val": 22}


def test_issue_20_group_without_direct_listener():
    buf = []
    mgr = Manager("test")

    def handle(event):
        buf.append(f"{event.name}-{event.data['user']}|")

    mgr.on("app.user.*", ListenerFunc(handle))
    assert not mgr.has_listeners("app.user.add")
    event = mgr.fire("app.user.add", {"user": "INHERE"})
    assert event.name == "app.user.add"
    assert event.data == {"user": "INHERE"}
    assert "".join(buf) == "app.user.add-INHERE|"


def test_issue_61_many_consumers():
    def options(opts):
        opts.consumer_num = 10
        opts.enable_lock = False

    em = Manager("default", options)
    assert em.options.consumer_num == 10
    seen = []
    lock = threading.Lock()
    done = threading.Event()

    def handle(event):
        with lock:
            seen.append(event.data["arg0"])
            if len(seen) == 20:
                done.set()

    em.on("app.evt1", ListenerFunc(handle), Priority.NORMAL)
    assert em.listeners_count("app.evt1") == 1
    for i in range(20):
        em.fire_async(BasicEvent("app.evt1", {"arg0": i}))

    assert done.wait(5)
    em.close_wait()
    assert sorted(seen) == list(range(20))
    with pytest.raises(EventError):
        em.fire_async(BasicEvent("app.evt1", {"arg0": 20}))


def test_fire_without_listener_returns_event():
    em = Manager("test")
    event = em.fire("app.up", None)
    assert event.name == "app.up"
    assert event.data is None


def test_abort_stops_dispatch():
    em = Manager("test")
    calls = []
    em.on("a.b", ListenerFunc(lambda event: event.abort(True)), Priority.HIGH)
    em.on("a.b", ListenerFunc(lambda event: calls.append("direct")))
    em.on("a.*", ListenerFunc(lambda event: calls.append("group")))
    event = em.fire("a.b", {})
    assert event.aborted
    assert calls == []


def test_error_stops_dispatch_and_propagates():
    em = Manager("test")
    calls = []
    em.on("n1", ListenerFunc(_fail), Priority.MAX)
    em.on("n1", ListenerFunc(lambda event: calls.append(1)), Priority.MIN)
    with pytest.raises(RuntimeError, match="an error"):
        em.must_fire("n1", {})
    assert calls == []


def test_same_listener_registered_once():
    em = Manager("test")
    listener = ListenerFunc(lambda event: None)
    em.on("evt", listener)
    em.on("evt", listener, Priority.HIGH)
    assert em.listeners_count("evt") == 1


def test_add_listeners():
    em = Manager("test")
    buf = []
    em.add_listeners({"a": writer(buf, "a"), "b": writer(buf, "b")}, Priority.HIGH)
    assert em.listeners_count("a") == 1
    assert em.listeners_by_name("b").items()[0].priority == Priority.HIGH
    em.fire("a", None)
    em.fire("b", None)
    assert buf == ["a", "b"]


def test_remove_listener_from_all_names():
    em = Manager("test")
    listener = ListenerFunc(lambda event: None)
    em.on("a", listener)
    em.on("b", listener)
    em.remove_listener("", listener)
    assert em.listened_names() == {}
    assert em.listeners() == {}


def test_invalid_names_and_listeners():
    em = Manager("test")
    noop = ListenerFunc(lambda event: None)
    with pytest.raises(EventError):
        em.on("", noop)
    with pytest.raises(EventError):
        em.on("++df", noop)
    with pytest.raises(EventError):
        em.on("name", None)
    with pytest.raises(EventError):
        em.fire("", None)
    with pytest.raises(EventError):
        em.fire("1abc", None)


def test_all_node_registers_as_wildcard():
    em = Manager("test")
    em.on("**", ListenerFunc(lambda event: None))
    assert em.has_listeners("*")
    assert not em.has_listeners("**")


def test_predefined_event_data_handling():
    em = Manager("test")
    registered = BasicEvent("evt", {"a": 1})
    em.add_event(registered)

    fired = em.fire("evt", None)
    assert fired is not registered
    assert fired.data == {"a": 1}

    assert em.fire("evt", 0).data == {"a": 1}
    assert em.fire("evt", {"b": 2}).data == {"b": 2}
    assert registered.data == {"a": 1}


def test_get_and_remove_events():
    em = Manager("test")
    plain = PlainEvent("plain", {"x": 1})
    em.add_event(plain)
    em.add_event(BasicEvent("basic", {"y": 2}))

    assert em.get_event("plain") is plain
    assert em.get_event("basic").data == {"y": 2}
    assert em.get_event("missing") is None

    em.remove_event("plain")
    assert not em.has_event("plain")
    assert em.has_event("basic")
    em.remove_events()
    assert not em.has_event("basic")


def test_add_event_requires_valid_name():
    em = Manager("test")
    with pytest.raises(EventError):
        em.add_event(BasicEvent("", {}))


def test_fire_batch_skips_unknown_items():
    em = Manager("test")
    calls = []
    em.on("x", ListenerFunc(lambda event: calls.append(event.name)))
    errors = em.fire_batch("x", 42, PlainEvent("x", {}))
    assert errors == []
    assert calls == ["x", "x"]


def test_with_options_returns_manager():
    em = Manager("test")
    assert em.with_options(use_path_mode) is em
    assert em.options.match_mode == MatchMode.PATH


def test_reset_clears_everything():
    em = Manager("test")
    em.on("a", ListenerFunc(lambda event: None))
    em.add_event(BasicEvent("b", {}))
    em.listener_cache().store_wrapped("id", ListenerFunc(lambda event: None))
    em.adapter_cache()["str"] = "adapter"

    em.reset()
    assert not em.has_listeners("a")
    assert not em.has_event("b")
    assert em.listener_cache().get_wrapped("id") is None
    assert em.adapter_cache() == {"str": "adapter"}