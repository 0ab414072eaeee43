"""
缓冲区编组 (Buffer Marshaller)
输入：宿主字节缓冲 -> 会话自有的连续字节（一次整体拷贝）
输出：引擎缓冲 -> 按位深定宽的 numpy 数组（新拷贝，与引擎内存无别名）
"""
import numpy as np


def ingest(host_buffer) -> bytes:
    """
    把任意字节缓冲类对象拷贝为一段连续的自有字节

    支持 bytes / bytearray / memoryview（含切片视图）/ numpy 数组 / array.array
    以及其它实现了缓冲协议的对象。非连续的视图按 C 顺序展开。

    Raises:
        TypeError: 对象不支持缓冲协议
    """
    if isinstance(host_buffer, np.ndarray):
        # tobytes() 总是返回新的 C 连续拷贝
        return host_buffer.tobytes()
    view = memoryview(host_buffer)
    try:
        return view.tobytes()
    finally:
        view.release()


def emit(bits: int, data_size: int, native_data) -> np.ndarray:
    """
    把引擎输出缓冲拷贝为定宽数组

    Args:
        bits: 位深，16 时按 uint16 解释，否则按原始字节
        data_size: 有效字节数
        native_data: 引擎缓冲（任意缓冲协议对象）

    Returns:
        np.ndarray: 独立的新数组，调用方可以立即释放引擎缓冲
    """
    if data_size <= 0:
        return np.empty(0, dtype=np.uint16 if bits == 16 else np.uint8)
    raw = np.frombuffer(native_data, dtype=np.uint8, count=data_size)
    if bits == 16:
        length = data_size // 2
        return raw[:length * 2].view(np.uint16).copy()
    return raw.copy()
