"""事件类型定义"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Tuple


# 监听器类型：接收 emit 传入的任意位置参数，返回值仅在检查返回值模式下有意义
Handler = Callable[..., Any]


class _CancelEvent:
    """取消哨兵：监听器返回它即终止本次派发，聚合结果为 False"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "CANCEL_EVENT"


CANCEL_EVENT = _CancelEvent()


class UnregisteredEventError(Exception):
    """事件未注册"""

    def __init__(self, event_name: str):
        self.event_name = event_name
        super().__init__(f'Event "{event_name}" is not registered.')


class Flow(str, Enum):
    """单个监听器调用后的派发流向"""

    CONTINUE = "continue"  # 继续调用后续监听器
    CANCEL = "cancel"  # 终止本次派发


@dataclass(frozen=True)
class HandlerOutcome:
    """
    监听器调用结果

    派发循环只根据 flow 决定是否继续，根据 value 做布尔与聚合，
    不直接和哨兵值比较。

    Attributes:
        flow: 派发流向
        value: 该监听器对聚合结果的贡献
    """

    flow: Flow
    value: bool

    @classmethod
    def from_return(cls, result: Any) -> "HandlerOutcome":
        """将监听器返回值转换为调用结果"""
        if result is CANCEL_EVENT:
            return cls(Flow.CANCEL, False)
        return cls(Flow.CONTINUE, bool(result))

    @property
    def cancelled(self) -> bool:
        return self.flow is Flow.CANCEL


@dataclass
class Listener:
    """监听器表中的一项"""

    handler: Handler
    once: bool = False

    def __repr__(self) -> str:
        name = getattr(self.handler, "__name__", repr(self.handler))
        return f"Listener({name}, once={self.once})"


@dataclass
class PendingEmission:
    """
    暂停期间排队的一次 emit 调用

    Attributes:
        name: 事件名
        args: 位置参数（原样保存，重放时原样转发）
        seq: 实例内递增的顺序号
        queued_at: 入队时间（UTC）
    """

    name: str
    args: Tuple[Any, ...]
    seq: int
    queued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"PendingEmission({self.name!r}, seq={self.seq}, args={len(self.args)})"
