"""事件系统 - 注册门控、可暂停、可转发的事件发射器"""

from .types import (
    CANCEL_EVENT,
    Flow,
    Handler,
    HandlerOutcome,
    Listener,
    PendingEmission,
    UnregisteredEventError,
)
from .relay import RelayEntry, RelayHandler, RelayTable
from .emitter import GatedEmitter

__all__ = [
    "CANCEL_EVENT",
    "Flow",
    "Handler",
    "HandlerOutcome",
    "Listener",
    "PendingEmission",
    "UnregisteredEventError",
    "RelayEntry",
    "RelayHandler",
    "RelayTable",
    "GatedEmitter",
]
