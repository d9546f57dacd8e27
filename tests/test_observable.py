"""Tests for Observable and the Readable surface (subscribe/select)."""

from refstore import Observable, autorun


class TestObservable:
    def test_get_set(self):
        o = Observable(42)
        assert o.get() == 42
        o.set(100)
        assert o.get() == 100

    def test_dedup(self):
        """Setting an equal value should not trigger observers."""
        o = Observable({"id": "a"})
        log = []
        autorun(lambda: log.append(o.get()))
        o.set({"id": "a"})
        assert log == [{"id": "a"}]

    def test_notifies_observers(self):
        o = Observable("hello")
        log = []
        autorun(lambda: log.append(o.get()))
        o.set("world")
        assert log == ["hello", "world"]

    def test_update(self):
        o = Observable(frozenset({"a"}))
        o.update(lambda keys: keys | {"b"})
        assert o.get() == frozenset({"a", "b"})

    def test_repr(self):
        o = Observable(5)
        assert "Observable(5)" in repr(o)


class TestSubscribe:
    def test_fires_on_every_change(self):
        o = Observable(1)
        log = []
        o.subscribe(log.append)
        assert log == []
        o.set(2)
        o.set(3)
        assert log == [2, 3]

    def test_unsubscribe(self):
        o = Observable(1)
        log = []
        unsubscribe = o.subscribe(log.append)
        o.set(2)
        unsubscribe()
        o.set(3)
        assert log == [2]

    def test_read_after_write_sees_write(self):
        o = Observable(0)
        seen = []
        o.subscribe(lambda value: seen.append(o.get() == value))
        o.set(7)
        assert seen == [True]


class TestSelect:
    def test_derives_value(self):
        items = Observable({"a": 1})
        a = items.select(lambda m: m.get("a"))
        assert a.get() == 1
        items.set({"a": 2})
        assert a.get() == 2

    def test_missing_key_is_none(self):
        items = Observable({})
        assert items.select(lambda m: m.get("nope")).get() is None

    def test_select_of_select(self):
        o = Observable(2)
        squared_plus_one = o.select(lambda v: v * v).select(lambda v: v + 1)
        assert squared_plus_one.get() == 5
        o.set(3)
        assert squared_plus_one.get() == 10
