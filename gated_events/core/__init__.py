"""核心配置"""

from .config import Settings, settings

__all__ = [
    "Settings",
    "settings",
]
