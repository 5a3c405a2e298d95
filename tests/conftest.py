import pytest

from gated_events.events import GatedEmitter


@pytest.fixture
def emitter():
    return GatedEmitter(check_return_values=False)


@pytest.fixture
def checking_emitter():
    emitter = GatedEmitter()
    emitter.set_check_return_values()
    return emitter
