"""事件转发（relay / bubbling）"""

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .emitter import GatedEmitter


class RelayHandler:
    """
    挂在源发射器上的转发监听器

    源发射器触发 origin_event 时，在目标发射器上以 local_event 重新 emit，
    参数原样转发。目标发射器开启返回值检查时，把目标侧的聚合结果作为
    该监听器的返回值交回源发射器参与聚合；否则返回 True（不影响聚合）。
    """

    def __init__(self, target: "GatedEmitter", local_event: str):
        self.target = target
        self.local_event = local_event
        self.__name__ = f"relay:{local_event}"

    def _contribution(self, result: Optional[bool]) -> bool:
        # result 为 None 表示目标发射器处于暂停状态，调用已入队
        if self.target.check_return_values and result is not None:
            return result
        return True

    def __call__(self, *args: Any) -> bool:
        return self._contribution(self.target.emit(self.local_event, *args))

    async def call_async(self, *args: Any) -> bool:
        """供 emit_async 使用，目标侧的异步监听器会被依次等待"""
        return self._contribution(await self.target.emit_async(self.local_event, *args))

    def __repr__(self) -> str:
        return f"RelayHandler({self.local_event!r})"


@dataclass(frozen=True)
class RelayEntry:
    """
    转发表中的一项

    Attributes:
        origin_event: 源发射器上的事件名
        local_event: 本发射器上的事件名（prefix + origin_event）
        prefix: 事件名前缀
        handler: 挂在源发射器上的转发监听器
    """

    origin_event: str
    local_event: str
    prefix: str
    handler: RelayHandler


class RelayTable:
    """
    转发表

    以源发射器为弱引用键，同一 (源发射器, 事件名, 前缀) 只保存一项。
    转发表不延长源发射器的生命周期；源发射器被回收后对应项自动消失。
    """

    def __init__(self):
        self._entries: "weakref.WeakKeyDictionary[GatedEmitter, Dict[Tuple[str, str], RelayEntry]]" = (
            weakref.WeakKeyDictionary()
        )

    def get(self, origin: "GatedEmitter", origin_event: str, prefix: str) -> Optional[RelayEntry]:
        return self._entries.get(origin, {}).get((origin_event, prefix))

    def add(self, origin: "GatedEmitter", entry: RelayEntry) -> None:
        self._entries.setdefault(origin, {})[(entry.origin_event, entry.prefix)] = entry

    def pop(self, origin: "GatedEmitter", origin_event: str, prefix: str) -> Optional[RelayEntry]:
        """移除并返回一项，不存在时返回 None"""
        entries = self._entries.get(origin)
        if not entries:
            return None
        entry = entries.pop((origin_event, prefix), None)
        if not entries:
            del self._entries[origin]
        return entry

    def entries_for(self, origin: "GatedEmitter", prefix: Optional[str] = None) -> List[RelayEntry]:
        """
        获取某个源发射器的转发项

        Args:
            origin: 源发射器
            prefix: 只返回该前缀的项，None 表示全部

        Returns:
            转发项列表（按建立顺序）
        """
        entries = self._entries.get(origin, {})
        return [e for e in entries.values() if prefix is None or e.prefix == prefix]

    def items(self) -> List[Tuple["GatedEmitter", RelayEntry]]:
        return [
            (origin, entry)
            for origin, entries in list(self._entries.items())
            for entry in entries.values()
        ]

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def __repr__(self) -> str:
        return f"RelayTable(entries={len(self)})"
