from gated_events.core.config import Settings, settings
from gated_events.events import GatedEmitter


def test_settings_defaults():
    config = Settings(_env_file=None)

    assert config.DEBUG is False
    assert config.CHECK_RETURN_VALUES is False
    assert config.REPLAY_ON_RESUME is False


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("GATED_EVENTS_CHECK_RETURN_VALUES", "true")
    monkeypatch.setenv("GATED_EVENTS_REPLAY_ON_RESUME", "1")

    config = Settings(_env_file=None)

    assert config.CHECK_RETURN_VALUES is True
    assert config.REPLAY_ON_RESUME is True


def test_emitter_uses_settings_defaults(monkeypatch):
    monkeypatch.setattr(settings, "CHECK_RETURN_VALUES", True)
    monkeypatch.setattr(settings, "REPLAY_ON_RESUME", True)

    emitter = GatedEmitter()
    emitter.register_event("foo")
    calls = []
    emitter.on("foo", lambda: calls.append("foo") or False)

    assert emitter.check_return_values is True
    assert emitter.emit("foo") is False

    emitter.pause_events()
    emitter.emit("foo")
    emitter.resume_events()
    assert calls == ["foo", "foo"]


def test_explicit_argument_overrides_settings(monkeypatch):
    monkeypatch.setattr(settings, "CHECK_RETURN_VALUES", True)

    assert GatedEmitter(check_return_values=False).check_return_values is False
