"""事件发射器实现"""

import inspect
import itertools
import logging
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple, Union

from gated_events.core.config import settings

from .relay import RelayEntry, RelayHandler, RelayTable
from .types import (
    CANCEL_EVENT,
    Handler,
    HandlerOutcome,
    Listener,
    PendingEmission,
    UnregisteredEventError,
)

logger = logging.getLogger(__name__)

EventNames = Union[str, Iterable[str]]


def _as_names(names: EventNames) -> List[str]:
    """单个事件名或事件名序列统一为列表"""
    if isinstance(names, str):
        return [names]
    return list(names)


class GatedEmitter:
    """
    注册门控的事件发射器

    只有先注册过的事件才能挂监听器和触发（once 例外：可以提前挂，
    但只会被注册之后的 emit 调用）。另外支持：

    - 暂停 / 恢复：暂停期间的 emit 进入队列，恢复时可按原顺序重放或丢弃
    - 转发：relay_events_from() 把其他发射器的事件以 prefix + 事件名在本实例重新触发，
      多级转发即事件冒泡
    - 返回值检查：开启后 emit 返回所有监听器返回值的布尔与，
      监听器返回 CANCEL_EVENT 时立即终止本次派发并返回 False
    - emit_async：依次等待每个监听器（串行，不并发），聚合规则同上

    用法示例：
        emitter = GatedEmitter()
        emitter.register_events(["saved", "deleted"])

        @emitter.on("saved")
        def on_saved(record_id, user=None):
            print(f"saved {record_id}")

        emitter.emit("saved", 42)
    """

    CANCEL_EVENT = CANCEL_EVENT

    def __init__(self, check_return_values: Optional[bool] = None):
        """
        初始化发射器

        Args:
            check_return_values: 是否检查监听器返回值，None 时使用 settings.CHECK_RETURN_VALUES
        """
        self._registered_events: List[str] = []
        self._listeners: Dict[str, List[Listener]] = {}
        self._relays = RelayTable()
        self._paused = False
        self._queue: Deque[PendingEmission] = deque()
        self._seq = itertools.count()
        if check_return_values is None:
            check_return_values = settings.CHECK_RETURN_VALUES
        self._check_return_values = check_return_values

    # ==================== 注册 ====================

    def register_event(self, name: str) -> None:
        """注册事件，已注册时忽略"""
        if name in self._registered_events:
            return
        self._registered_events.append(name)
        logger.debug(f"Registered event {name!r} on {self!r}")

    def register_events(self, names: EventNames) -> None:
        for name in _as_names(names):
            self.register_event(name)

    def unregister_event(self, name: str) -> None:
        """
        注销事件

        同时移除该事件上的所有监听器。未注册的事件名直接忽略。

        Args:
            name: 事件名
        """
        if name not in self._registered_events:
            return
        self._registered_events.remove(name)
        dropped = self._listeners.pop(name, [])
        logger.debug(f"Unregistered event {name!r}, dropped {len(dropped)} listener(s)")

    def unregister_events(self, names: EventNames) -> None:
        for name in _as_names(names):
            self.unregister_event(name)

    def is_registered_event(self, name: str) -> bool:
        return name in self._registered_events

    def get_registered_events(self) -> List[str]:
        """按注册顺序返回已注册事件名（副本）"""
        return list(self._registered_events)

    def _ensure_registered(self, name: str) -> None:
        if name not in self._registered_events:
            raise UnregisteredEventError(name)

    # ==================== 监听器管理 ====================

    def _add(self, name: str, handler: Optional[Handler], once: bool) -> Any:
        if handler is None:
            # 作为装饰器使用：@emitter.on("foo")
            def decorator(func: Handler) -> Handler:
                self._listeners.setdefault(name, []).append(Listener(func, once=once))
                return func

            return decorator
        self._listeners.setdefault(name, []).append(Listener(handler, once=once))
        return handler

    def on(self, name: str, handler: Optional[Handler] = None) -> Any:
        """
        注册监听器

        只传事件名时返回装饰器。

        Args:
            name: 事件名（必须已注册）
            handler: 监听函数，按挂载顺序被调用

        Returns:
            handler 本身，或装饰器

        Raises:
            UnregisteredEventError: 事件未注册
        """
        self._ensure_registered(name)
        return self._add(name, handler, once=False)

    add_listener = on

    def once(self, name: str, handler: Optional[Handler] = None) -> Any:
        """
        注册只触发一次的监听器

        不检查注册状态：事件注册前挂载的 once 监听器会保留，
        直到注册后第一次成功的 emit 调用它，随后自动移除。

        Args:
            name: 事件名
            handler: 监听函数

        Returns:
            handler 本身，或装饰器
        """
        return self._add(name, handler, once=True)

    def add_listeners(self, names: EventNames, handler: Handler) -> Handler:
        """同一监听器挂到多个事件上"""
        for name in _as_names(names):
            self.on(name, handler)
        return handler

    def off(self, name: str, handler: Handler) -> None:
        """
        移除监听器

        只移除最早挂载的一项匹配；不存在时忽略。

        Args:
            name: 事件名
            handler: 要移除的监听函数
        """
        entries = self._listeners.get(name)
        if not entries:
            return
        for index, entry in enumerate(entries):
            if entry.handler == handler:
                del entries[index]
                return

    remove_listener = off

    def remove_listeners(self, names: EventNames, handler: Handler) -> None:
        for name in _as_names(names):
            self.off(name, handler)

    def remove_all_listeners(self, name: Optional[str] = None) -> None:
        """移除某个事件的全部监听器，name 为 None 时移除所有事件的监听器"""
        if name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(name, None)

    def listeners(self, name: str) -> List[Handler]:
        return [entry.handler for entry in self._listeners.get(name, [])]

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def _detach_once(self, name: str, entry: Listener) -> bool:
        """调用前摘除 once 监听器；已被摘除（例如重入的 emit 已调用过）时返回 False"""
        entries = self._listeners.get(name, [])
        for index, current in enumerate(entries):
            if current is entry:
                del entries[index]
                return True
        return False

    def _snapshot(self, name: str) -> List[Listener]:
        return list(self._listeners.get(name, []))

    # ==================== 触发 ====================

    def set_check_return_values(self, enabled: bool = True) -> None:
        """开启（或关闭）返回值检查"""
        self._check_return_values = enabled

    @property
    def check_return_values(self) -> bool:
        return self._check_return_values

    def _enqueue(self, name: str, args: Tuple[Any, ...]) -> None:
        emission = PendingEmission(name=name, args=args, seq=next(self._seq))
        self._queue.append(emission)
        logger.debug(f"Paused, queued {emission!r}")

    def _invoke(self, name: str, handler: Handler, args: Tuple[Any, ...]) -> Any:
        try:
            result = handler(*args)
        except Exception as e:
            # 转发监听器内部的 emit 已经记录过
            if not isinstance(handler, RelayHandler):
                logger.exception(
                    f"Event handler error: {getattr(handler, '__name__', handler)} for {name}: {e}"
                )
            raise
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise TypeError(
                f"Handler {getattr(handler, '__name__', handler)} for {name} returned an awaitable, "
                f"use emit_async()"
            )
        return result

    def emit(self, name: str, *args: Any) -> Optional[bool]:
        """
        触发事件

        参数原样转发给每个监听器，不补齐、不截断。

        Args:
            name: 事件名
            *args: 位置参数

        Returns:
            暂停中：None（调用已入队）
            未开启返回值检查：是否至少有一个监听器
            开启返回值检查：所有返回值的布尔与；有监听器返回 CANCEL_EVENT 时为 False，
            且其后的监听器不再调用

        Raises:
            UnregisteredEventError: 事件未注册（暂停时同样检查）
        """
        self._ensure_registered(name)
        if self._paused:
            self._enqueue(name, args)
            return None

        entries = self._snapshot(name)
        if not self._check_return_values:
            for entry in entries:
                if entry.once and not self._detach_once(name, entry):
                    continue
                self._invoke(name, entry.handler, args)
            return bool(entries)

        result = True
        for entry in entries:
            if entry.once and not self._detach_once(name, entry):
                continue
            outcome = HandlerOutcome.from_return(self._invoke(name, entry.handler, args))
            if outcome.cancelled:
                logger.debug(f"Event {name!r} cancelled by {entry!r}")
                return outcome.value
            result = result and outcome.value
        return result

    async def _invoke_async(self, name: str, handler: Handler, args: Tuple[Any, ...]) -> Any:
        try:
            if isinstance(handler, RelayHandler):
                return await handler.call_async(*args)
            result = handler(*args)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            if not isinstance(handler, RelayHandler):
                logger.exception(
                    f"Event handler error: {getattr(handler, '__name__', handler)} for {name}: {e}"
                )
            raise

    async def emit_async(self, name: str, *args: Any) -> Optional[bool]:
        """
        异步触发事件

        监听器可以是普通函数或协程函数。按挂载顺序逐个调用并等待，
        前一个完成后才调用下一个。无论是否开启返回值检查都做聚合。

        Args:
            name: 事件名
            *args: 位置参数

        Returns:
            暂停中返回 None，否则返回聚合结果（规则同 emit）

        Raises:
            UnregisteredEventError: 事件未注册
        """
        self._ensure_registered(name)
        if self._paused:
            self._enqueue(name, args)
            return None

        result = True
        for entry in self._snapshot(name):
            if entry.once and not self._detach_once(name, entry):
                continue
            outcome = HandlerOutcome.from_return(await self._invoke_async(name, entry.handler, args))
            if outcome.cancelled:
                logger.debug(f"Event {name!r} cancelled by {entry!r}")
                return outcome.value
            result = result and outcome.value
        return result

    # ==================== 暂停 / 恢复 ====================

    def pause_events(self) -> None:
        """暂停事件，之后的 emit 调用进入队列"""
        self._paused = True

    @property
    def is_paused(self) -> bool:
        return self._paused

    def pending_events(self) -> List[PendingEmission]:
        """排队中的 emit 调用（副本，按入队顺序）"""
        return list(self._queue)

    def _drain(self, replay: Optional[bool]) -> List[PendingEmission]:
        if replay is None:
            replay = settings.REPLAY_ON_RESUME
        self._paused = False
        # 先摘下整个队列：重放期间再次暂停时，剩余调用按原顺序重新入队
        pending, self._queue = self._queue, deque()
        if not replay:
            if pending:
                logger.debug(f"Resumed, discarded {len(pending)} queued emission(s)")
            return []
        logger.debug(f"Resumed, replaying {len(pending)} queued emission(s)")
        return list(pending)

    @staticmethod
    def _warn_dropped(pending: List[PendingEmission], failed_index: int) -> None:
        dropped = len(pending) - failed_index - 1
        if dropped:
            logger.warning(
                f"Replay of {pending[failed_index]!r} failed, dropped {dropped} queued emission(s)"
            )

    def resume_events(self, replay: Optional[bool] = None) -> None:
        """
        恢复事件

        重放时注册状态和返回值检查都按重放时刻判断。某次重放抛出异常时，
        异常向上传播，尚未重放的调用被丢弃。

        Args:
            replay: True 按原顺序重放排队的调用，False 丢弃；
                None 时使用 settings.REPLAY_ON_RESUME
        """
        pending = self._drain(replay)
        for index, emission in enumerate(pending):
            try:
                self.emit(emission.name, *emission.args)
            except Exception:
                self._warn_dropped(pending, index)
                raise

    async def resume_events_async(self, replay: Optional[bool] = None) -> None:
        """同 resume_events，重放通过 emit_async 进行"""
        pending = self._drain(replay)
        for index, emission in enumerate(pending):
            try:
                await self.emit_async(emission.name, *emission.args)
            except Exception:
                self._warn_dropped(pending, index)
                raise

    # ==================== 转发 ====================

    def relay_events_from(self, origin: "GatedEmitter", names: EventNames, prefix: str = "") -> None:
        """
        转发其他发射器的事件

        origin 每次触发这些事件时，本实例以 prefix + 事件名重新触发，参数原样转发。
        本地事件名在建立转发时自动注册；之后若被注销，转发触发时抛出 UnregisteredEventError。
        同一 (origin, 事件名, prefix) 重复建立时忽略。

        Args:
            origin: 源发射器
            names: 单个事件名或事件名列表（必须已在 origin 上注册）
            prefix: 本地事件名前缀

        Raises:
            UnregisteredEventError: 事件未在 origin 上注册
        """
        origin_events = _as_names(names)
        # 先全部校验，避免部分建立后才抛出
        for origin_event in origin_events:
            if not origin.is_registered_event(origin_event):
                raise UnregisteredEventError(origin_event)

        for origin_event in origin_events:
            entry = self._relays.get(origin, origin_event, prefix)
            if entry is not None:
                if self._is_attached(origin, entry):
                    continue
                # origin 注销事件或清空监听器后留下的失效项
                self._relays.pop(origin, origin_event, prefix)
            local_event = f"{prefix}{origin_event}"
            handler = RelayHandler(self, local_event)
            origin.on(origin_event, handler)
            self.register_event(local_event)
            self._relays.add(origin, RelayEntry(origin_event, local_event, prefix, handler))
            logger.debug(f"Relaying {origin_event!r} from {origin!r} as {local_event!r}")

    def unrelay_events_from(
        self,
        origin: "GatedEmitter",
        names: Optional[EventNames] = None,
        prefix: str = "",
    ) -> None:
        """
        停止转发

        从 origin 上摘除转发监听器。本地事件保持注册。

        Args:
            origin: 源发射器
            names: 要停止转发的事件名，None 表示该 prefix 下的全部
            prefix: 建立转发时使用的前缀
        """
        if names is None:
            entries = self._relays.entries_for(origin, prefix)
        else:
            entries = [self._relays.get(origin, name, prefix) for name in _as_names(names)]
        for entry in entries:
            if entry is None:
                continue
            self._relays.pop(origin, entry.origin_event, entry.prefix)
            origin.off(entry.origin_event, entry.handler)
            logger.debug(f"Stopped relaying {entry.origin_event!r} from {origin!r}")

    def relayed_events(self) -> List[Tuple["GatedEmitter", str, str]]:
        """当前仍挂在源发射器上的转发：(源发射器, 源事件名, 本地事件名)"""
        return [
            (origin, entry.origin_event, entry.local_event)
            for origin, entry in self._relays.items()
            if self._is_attached(origin, entry)
        ]

    @staticmethod
    def _is_attached(origin: "GatedEmitter", entry: RelayEntry) -> bool:
        return any(handler is entry.handler for handler in origin.listeners(entry.origin_event))

    def __repr__(self) -> str:
        listener_counts = {name: len(entries) for name, entries in self._listeners.items() if entries}
        return (
            f"GatedEmitter(events={self._registered_events}, listeners={listener_counts}, "
            f"paused={self._paused})"
        )
