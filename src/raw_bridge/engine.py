"""
RAW 解码引擎接口
会话只通过这个协议和引擎打交道，所有阶段都返回引擎原生状态码
"""
from typing import Optional, Protocol

from .imgdata import ImageData, ProcessedImage
from .params import OutputParams

# ============================================================================
# 引擎状态码
# ============================================================================

LIBRAW_SUCCESS = 0
LIBRAW_UNSPECIFIED_ERROR = -1
LIBRAW_FILE_UNSUPPORTED = -2
LIBRAW_REQUEST_FOR_NONEXISTENT_IMAGE = -3
LIBRAW_OUT_OF_ORDER_CALL = -4
LIBRAW_NO_THUMBNAIL = -5
LIBRAW_UNSUPPORTED_THUMBNAIL = -6
LIBRAW_INPUT_CLOSED = -7
LIBRAW_NOT_IMPLEMENTED = -8
LIBRAW_UNSUFFICIENT_MEMORY = -100007
LIBRAW_DATA_ERROR = -100008
LIBRAW_IO_ERROR = -100009
LIBRAW_CANCELLED_BY_CALLBACK = -100010
LIBRAW_BAD_CROP = -100011
LIBRAW_TOO_BIG = -100012
LIBRAW_MEMPOOL_OVERFLOW = -100013

_MESSAGES = {
    LIBRAW_SUCCESS: "No error",
    LIBRAW_UNSPECIFIED_ERROR: "Unspecified error",
    LIBRAW_FILE_UNSUPPORTED: "Unsupported file format or not RAW file",
    LIBRAW_REQUEST_FOR_NONEXISTENT_IMAGE: "Request for nonexisting image number",
    LIBRAW_OUT_OF_ORDER_CALL: "Out of order call of libraw function",
    LIBRAW_NO_THUMBNAIL: "No thumbnail in file",
    LIBRAW_UNSUPPORTED_THUMBNAIL: "Unsupported thumbnail format",
    LIBRAW_INPUT_CLOSED: "No input stream, or input stream closed",
    LIBRAW_NOT_IMPLEMENTED: "Decoder not implemented for this data format",
    LIBRAW_UNSUFFICIENT_MEMORY: "Unsufficient memory",
    LIBRAW_DATA_ERROR: "Corrupted data or unexpected EOF",
    LIBRAW_IO_ERROR: "Input/output error",
    LIBRAW_CANCELLED_BY_CALLBACK: "Cancelled by user callback",
    LIBRAW_BAD_CROP: "Bad crop box",
    LIBRAW_TOO_BIG: "Image too big for processing",
    LIBRAW_MEMPOOL_OVERFLOW: "Libraw internal mempool overflowed",
}


def strerror(code: int) -> str:
    """状态码 -> 可读描述"""
    return _MESSAGES.get(code, f"Unknown error code {code}")


# ============================================================================
# 引擎协议
# ============================================================================

class RawEngine(Protocol):
    """RAW 解码引擎接口"""

    @property
    def imgdata(self) -> ImageData:
        """open 之后的只读状态快照"""
        ...

    def open_buffer(self, data: bytes) -> int:
        ...

    def unpack(self) -> int:
        ...

    def dcraw_process(self, params: OutputParams) -> int:
        ...

    def dcraw_make_mem_image(self) -> Optional[ProcessedImage]:
        """渲染内存图像；失败时返回 None"""
        ...

    def dcraw_clear_mem(self, image: ProcessedImage) -> None:
        ...

    def unpack_thumb(self) -> int:
        """解包缩略图，成功后数据位于 imgdata.thumbnail.thumb"""
        ...

    def recycle(self) -> None:
        """丢弃上一次 open 的所有解码数据，回到干净状态"""
        ...

    def close(self) -> None:
        """释放引擎句柄本身"""
        ...
