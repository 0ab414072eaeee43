"""
会话资源所有权
输入缓冲区和字符串参数都是显式分配、显式释放的资源，
AllocationTracker 记录每种资源的存活数量，用于检查泄漏和重复释放
"""
from collections import Counter
from typing import Dict, Optional


class AllocationTracker:
    """按类型统计存活的资源分配"""

    def __init__(self):
        self._live = Counter()
        self.total_allocated = 0
        self.total_released = 0

    def allocate(self, kind: str) -> None:
        self._live[kind] += 1
        self.total_allocated += 1

    def release(self, kind: str) -> None:
        if self._live[kind] <= 0:
            raise RuntimeError(f"Double release of '{kind}' resource")
        self._live[kind] -= 1
        self.total_released += 1

    def live(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return sum(self._live.values())
        return self._live[kind]

    def snapshot(self) -> Dict[str, int]:
        return {k: v for k, v in self._live.items() if v}


class OwnedString:
    """
    可选的自有字符串资源 (等价于引擎参数里的 char* 字段)

    assign() 是唯一的修改入口：总是先释放旧缓冲区再保存新值；
    空字符串表示"未设置"，不会分配空缓冲区。
    """

    KIND = 'string'

    def __init__(self, tracker: Optional[AllocationTracker] = None):
        self._tracker = tracker
        self._buffer: Optional[bytes] = None

    @property
    def value(self) -> Optional[str]:
        if self._buffer is None:
            return None
        return self._buffer[:-1].decode('utf-8')

    @property
    def buffer(self) -> Optional[bytes]:
        """NUL 结尾的原始字节，未设置时为 None"""
        return self._buffer

    def assign(self, value: str) -> None:
        self.release()
        if value:
            self._buffer = value.encode('utf-8') + b'\x00'
            if self._tracker is not None:
                self._tracker.allocate(self.KIND)

    def release(self) -> None:
        if self._buffer is None:
            return
        self._buffer = None
        if self._tracker is not None:
            self._tracker.release(self.KIND)

    def __bool__(self) -> bool:
        return self._buffer is not None

    def __repr__(self) -> str:
        return f"OwnedString({self.value!r})"


class InputBuffer:
    """会话持有的输入字节 (RAW 文件内容)，整体替换、显式释放"""

    KIND = 'input'

    def __init__(self, data: bytes, tracker: Optional[AllocationTracker] = None):
        self._tracker = tracker
        self._data: Optional[bytes] = data
        if tracker is not None:
            tracker.allocate(self.KIND)

    @property
    def data(self) -> bytes:
        if self._data is None:
            raise RuntimeError("Input buffer already released")
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    def __len__(self) -> int:
        return 0 if self._data is None else len(self._data)

    def release(self) -> None:
        if self._data is None:
            return
        self._data = None
        if self._tracker is not None:
            self._tracker.release(self.KIND)
