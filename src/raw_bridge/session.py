"""
会话生命周期管理 (Session Lifecycle Manager)

一个 RawSession 独占一个引擎句柄、一段输入缓冲区和一份解码参数记录。
open() 是唯一的重置方式：每次都会先释放上一代资源再接管新的资源。
会话不是线程安全的，同一会话上的调用必须由调用方串行化。
"""
from typing import Any, Dict, Optional

from .buffers import ingest
from .engine import LIBRAW_SUCCESS, RawEngine, strerror
from .exceptions import EngineOpenError, RawBridgeError, SessionClosedError
from .logger import Logger
from .metadata import project_metadata
from .params import OutputParams
from .pipeline import PipelineState, PixelPipeline
from .resources import AllocationTracker, InputBuffer
from .settings import apply_settings


class RawSession:
    """RAW 解码会话"""

    def __init__(
        self,
        engine: Optional[RawEngine] = None,
        logger: Optional[Logger] = None,
        tracker: Optional[AllocationTracker] = None,
    ):
        """
        Args:
            engine: 解码引擎；默认创建基于 rawpy 的引擎
            logger: 可选日志处理器，不传则不输出任何日志
            tracker: 资源分配统计，默认新建
        """
        if engine is None:
            from .rawpy_engine import RawpyEngine
            engine = RawpyEngine(logger=logger)

        self._engine: Optional[RawEngine] = engine
        self._logger = logger
        self.tracker = tracker if tracker is not None else AllocationTracker()
        self._buffer: Optional[InputBuffer] = None
        self._params = OutputParams.defaults(self.tracker)
        self._pipeline = PixelPipeline(engine, logger)

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._engine is None

    @property
    def params(self) -> OutputParams:
        return self._params

    @property
    def unpacked(self) -> bool:
        return self._pipeline.unpacked

    @property
    def pipeline_state(self) -> PipelineState:
        return self._pipeline.state

    @property
    def input_size(self) -> int:
        return len(self._buffer) if self._buffer is not None else 0

    def _require_engine(self) -> RawEngine:
        if self._engine is None:
            raise SessionClosedError("Session has been torn down")
        return self._engine

    # ------------------------------------------------------------------
    # 操作
    # ------------------------------------------------------------------

    def open(self, buffer, settings: Optional[Any] = None) -> None:
        """
        重置引擎、叠加设置、拷入缓冲区并调用引擎 open

        Args:
            buffer: RAW 文件字节（任意缓冲协议对象）
            settings: 可选的稀疏配置映射

        Raises:
            EngineOpenError: 引擎 open 阶段返回非成功状态码
            TypeError: buffer 不是字节缓冲类对象
        """
        engine = self._require_engine()

        # 1. 引擎回到干净状态，上一代输入缓冲区随之失效
        engine.recycle()
        self._release_buffer()

        # 2. 参数记录整体重建为引擎默认值，再叠加新设置
        self._params.release_strings()
        self._params = OutputParams.defaults(self.tracker)
        apply_settings(self._params, settings, self._logger)

        # 3. 新一代管线，unpacked 标记清零
        self._pipeline = PixelPipeline(engine, self._logger)

        # 4. 拷入输入缓冲区
        self._buffer = InputBuffer(ingest(buffer), self.tracker)
        if self._logger:
            self._logger.info(f"  🔹 [Open] {len(self._buffer)} bytes")

        ret = engine.open_buffer(self._buffer.data)
        if ret != LIBRAW_SUCCESS:
            # 设置保留，输入作废；下一次 open 仍会完整重置
            self._release_buffer()
            if self._logger:
                self._logger.error(f"  ❌ [Open] open_buffer() failed with code {ret}")
            raise EngineOpenError(f"open_buffer() failed with code {ret}: {strerror(ret)}", ret)

    def metadata(self, full_output: bool = False) -> Dict[str, Any]:
        """
        读取元数据（只读，不改变引擎状态）

        Args:
            full_output: True 时附加 colorData / commonMetadata / 厂商块
        """
        engine = self._require_engine()
        return project_metadata(engine.imgdata, bool(full_output))

    def image_data(self) -> Optional[Dict[str, Any]]:
        """
        解码并渲染完整图像

        Returns:
            dict | None: {width, height, colors, bits, dataSize, data}；
                         引擎无法渲染时返回 None

        Raises:
            UnpackError / ProcessError: 首次运行管线时对应阶段失败
        """
        self._require_engine()
        try:
            result = self._pipeline.image_data(self._params)
        except RawBridgeError as e:
            if self._logger:
                self._logger.error(f"  ❌ [Pipeline] {e}")
            raise
        return result.to_dict() if result is not None else None

    def thumbnail_data(self) -> Dict[str, Any]:
        """
        提取内嵌缩略图

        Returns:
            dict: {data, width, height, format}

        Raises:
            ThumbnailError: 引擎报错或没有缩略图数据
        """
        self._require_engine()
        result = self._pipeline.thumbnail_data()
        if self._logger:
            self._logger.info(f"  🖼️  [Thumbnail] {result.format} {result.width}x{result.height}")
        return result.to_dict()

    # ------------------------------------------------------------------
    # 资源释放
    # ------------------------------------------------------------------

    def _release_buffer(self) -> None:
        if self._buffer is not None:
            self._buffer.release()
            self._buffer = None

    def _teardown(self) -> None:
        """按 引擎句柄 -> 输入缓冲区 -> 字符串参数 的顺序释放；可重复调用"""
        engine = self._engine
        if engine is None:
            return
        self._engine = None
        try:
            engine.recycle()
            engine.close()
        finally:
            self._release_buffer()
            self._params.release_strings()

    def __enter__(self) -> "RawSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._teardown()
        return False

    def __del__(self):
        if hasattr(self, '_engine') and self._engine is not None:
            self._teardown()
