"""gated-events - 注册门控的事件发射器

- events: GatedEmitter 及相关类型
- core: 配置
"""

import logging

from gated_events.core.config import settings
from gated_events.events import (
    CANCEL_EVENT,
    GatedEmitter,
    UnregisteredEventError,
)

if settings.DEBUG:
    logging.getLogger(__name__).setLevel(logging.DEBUG)

__version__ = "0.1.0"

__all__ = [
    "CANCEL_EVENT",
    "GatedEmitter",
    "UnregisteredEventError",
    "settings",
]
