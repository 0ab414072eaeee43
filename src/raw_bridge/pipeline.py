"""
像素管线 (Pixel Pipeline)
Opened -> Unpacked -> Processed，只向前推进，只有重新 open 才会重置
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np

from .buffers import emit
from .config import THUMBNAIL_DATA_FORMATS, THUMBNAIL_FORMAT_UNKNOWN
from .engine import LIBRAW_NO_THUMBNAIL, LIBRAW_SUCCESS, RawEngine, strerror
from .exceptions import ProcessError, ThumbnailError, UnpackError
from .logger import Logger
from .params import OutputParams


class PipelineState(Enum):
    OPENED = 'opened'
    UNPACKED = 'unpacked'
    PROCESSED = 'processed'


@dataclass
class PixelBuffer:
    width: int
    height: int
    colors: int
    bits: int
    data_size: int
    data: np.ndarray

    def to_dict(self) -> Dict[str, Any]:
        return {
            'width': self.width,
            'height': self.height,
            'colors': self.colors,
            'bits': self.bits,
            'dataSize': self.data_size,
            'data': self.data,
        }


@dataclass
class ThumbnailBuffer:
    data: np.ndarray
    width: int
    height: int
    format: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': self.data,
            'width': self.width,
            'height': self.height,
            'format': self.format,
        }


def thumbnail_format(code: int) -> str:
    return THUMBNAIL_DATA_FORMATS.get(code, THUMBNAIL_FORMAT_UNKNOWN)


class PixelPipeline:
    """
    unpack/process 最多执行一次。

    unpacked 标记的含义是"已尝试"而不是"已成功"：它在 unpack 之前就被置位，
    所以首次调用中 unpack 或 process 失败后，同一会话内后续的调用不会重试，
    而是直接请求渲染。
    """

    def __init__(self, engine: RawEngine, logger: Optional[Logger] = None):
        self._engine = engine
        self._logger = logger
        self.state = PipelineState.OPENED
        self.unpacked = False

    def run(self, params: OutputParams) -> None:
        if self.unpacked:
            return
        self.unpacked = True

        if self._logger:
            self._logger.info("  🔹 [Pipeline] Unpacking RAW data...")
        ret = self._engine.unpack()
        if ret != LIBRAW_SUCCESS:
            raise UnpackError(f"unpack() failed with code {ret}: {strerror(ret)}", ret)
        self.state = PipelineState.UNPACKED

        if self._logger:
            self._logger.info("  🔹 [Pipeline] Processing (demosaic / color)...")
        ret = self._engine.dcraw_process(params)
        if ret != LIBRAW_SUCCESS:
            raise ProcessError(f"dcraw_process() failed with code {ret}: {strerror(ret)}", ret)
        self.state = PipelineState.PROCESSED

    def image_data(self, params: OutputParams) -> Optional[PixelBuffer]:
        """运行管线（仅首次）并拷出一张新渲染的内存图像；渲染失败返回 None"""
        self.run(params)

        image = self._engine.dcraw_make_mem_image()
        if image is None:
            if self._logger:
                self._logger.warning("  ⚠️  [Pipeline] Engine produced no rendered image.")
            return None

        try:
            data = emit(image.bits, image.data_size, image.data)
            return PixelBuffer(
                width=image.width,
                height=image.height,
                colors=image.colors,
                bits=image.bits,
                data_size=image.data_size,
                data=data,
            )
        finally:
            # 引擎缓冲在拷出后立即交还
            self._engine.dcraw_clear_mem(image)

    def thumbnail_data(self) -> ThumbnailBuffer:
        """每次都重新解包缩略图，不受管线状态影响"""
        ret = self._engine.unpack_thumb()
        if ret != LIBRAW_SUCCESS:
            raise ThumbnailError(f"Failed to unpack thumbnail: {strerror(ret)}", ret)

        thumb = self._engine.imgdata.thumbnail
        if not thumb.thumb:
            raise ThumbnailError(
                f"Failed to unpack thumbnail: {strerror(LIBRAW_NO_THUMBNAIL)}",
                LIBRAW_NO_THUMBNAIL,
            )

        length = thumb.tlength or len(thumb.thumb)
        return ThumbnailBuffer(
            data=emit(8, min(length, len(thumb.thumb)), thumb.thumb),
            width=thumb.twidth,
            height=thumb.theight,
            format=thumbnail_format(thumb.tformat),
        )
