import pytest

from gated_events.events import UnregisteredEventError


def test_register_one_event(emitter):
    emitter.register_event("foo")

    assert emitter.is_registered_event("foo")


def test_register_events_keeps_order(emitter):
    emitter.register_events(["foo", "bar"])

    assert emitter.get_registered_events() == ["foo", "bar"]


def test_register_is_idempotent(emitter):
    emitter.register_events(["foo", "bar"])
    emitter.register_event("foo")
    emitter.register_events(["bar", "baz"])

    assert emitter.get_registered_events() == ["foo", "bar", "baz"]


def test_get_registered_events_returns_copy(emitter):
    emitter.register_event("foo")
    events = emitter.get_registered_events()
    events.append("bar")

    assert emitter.get_registered_events() == ["foo"]


def test_unregister_one_event(emitter):
    emitter.register_events(["foo", "bar"])
    emitter.unregister_event("foo")

    assert not emitter.is_registered_event("foo")
    assert emitter.get_registered_events() == ["bar"]


def test_unregister_multiple_events(emitter):
    emitter.register_events(["foo", "bar"])
    emitter.unregister_events(["foo", "bar"])

    assert emitter.get_registered_events() == []
    for name in ("foo", "bar"):
        with pytest.raises(UnregisteredEventError) as exc_info:
            emitter.emit(name)
        assert str(exc_info.value) == f'Event "{name}" is not registered.'


def test_unregister_unknown_name_is_ignored(emitter):
    emitter.register_event("foo")
    emitter.unregister_events(["nope", "also-nope"])

    assert emitter.get_registered_events() == ["foo"]


def test_unregister_drops_listeners(emitter):
    calls = []
    emitter.register_event("foo")
    emitter.on("foo", lambda: calls.append("foo"))

    emitter.unregister_event("foo")
    emitter.register_event("foo")
    emitter.emit("foo")

    assert calls == []
    assert emitter.listener_count("foo") == 0


def test_denies_unregistered_events(emitter):
    with pytest.raises(UnregisteredEventError) as exc_info:
        emitter.emit("bar")

    assert str(exc_info.value) == 'Event "bar" is not registered.'
    assert exc_info.value.event_name == "bar"


def test_on_requires_registration(emitter):
    with pytest.raises(UnregisteredEventError):
        emitter.on("foo", lambda: None)

    with pytest.raises(UnregisteredEventError):
        emitter.add_listeners(["foo"], lambda: None)
