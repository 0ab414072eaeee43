"""
基于 rawpy (LibRaw) 的引擎实现
把 rawpy 的异常翻译回 LibRaw 状态码，把 OutputParams 翻译成 rawpy.Params
"""
import io
from typing import Any, Dict, Optional

import numpy as np
import rawpy

from .engine import (
    LIBRAW_BAD_CROP,
    LIBRAW_CANCELLED_BY_CALLBACK,
    LIBRAW_DATA_ERROR,
    LIBRAW_FILE_UNSUPPORTED,
    LIBRAW_INPUT_CLOSED,
    LIBRAW_IO_ERROR,
    LIBRAW_MEMPOOL_OVERFLOW,
    LIBRAW_NO_THUMBNAIL,
    LIBRAW_NOT_IMPLEMENTED,
    LIBRAW_OUT_OF_ORDER_CALL,
    LIBRAW_REQUEST_FOR_NONEXISTENT_IMAGE,
    LIBRAW_SUCCESS,
    LIBRAW_TOO_BIG,
    LIBRAW_UNSPECIFIED_ERROR,
    LIBRAW_UNSUFFICIENT_MEMORY,
    LIBRAW_UNSUPPORTED_THUMBNAIL,
)
from .imgdata import ColorData, ImageData, ImageSizes, IParams, ImgOther, ProcessedImage, ThumbnailInfo
from .logger import Logger
from .params import OutputParams

# rawpy 异常类名 -> LibRaw 状态码
_ERROR_CODES = {
    'LibRawFileUnsupportedError': LIBRAW_FILE_UNSUPPORTED,
    'LibRawRequestForNonexistentImageError': LIBRAW_REQUEST_FOR_NONEXISTENT_IMAGE,
    'LibRawOutOfOrderCallError': LIBRAW_OUT_OF_ORDER_CALL,
    'LibRawNoThumbnailError': LIBRAW_NO_THUMBNAIL,
    'LibRawUnsupportedThumbnailError': LIBRAW_UNSUPPORTED_THUMBNAIL,
    'LibRawInputClosedError': LIBRAW_INPUT_CLOSED,
    'LibRawNotImplementedError': LIBRAW_NOT_IMPLEMENTED,
    'LibRawInsufficientMemoryError': LIBRAW_UNSUFFICIENT_MEMORY,
    'LibRawDataError': LIBRAW_DATA_ERROR,
    'LibRawIOError': LIBRAW_IO_ERROR,
    'LibRawCancelledByCallbackError': LIBRAW_CANCELLED_BY_CALLBACK,
    'LibRawBadCropError': LIBRAW_BAD_CROP,
    'LibRawTooBigError': LIBRAW_TOO_BIG,
    'LibRawMemPoolOverflowError': LIBRAW_MEMPOOL_OVERFLOW,
    # 当前 LibRaw 构建不支持的去马赛克算法
    'NotSupportedError': LIBRAW_NOT_IMPLEMENTED,
}

# rawpy.Params 无法表达的参数；设置为非默认值时只记录警告
UNSUPPORTED_PARAMS = frozenset([
    'greybox', 'cropbox', 'user_cblack', 'output_tiff', 'output_flags',
    'use_camera_matrix', 'use_fuji_rotate', 'green_matching', 'no_interpolation',
    'output_profile', 'camera_profile', 'dark_frame',
])

_THUMB_FORMAT_CODES = {'JPEG': 1, 'BITMAP': 2}


def status_from_error(error: BaseException) -> int:
    """沿 MRO 查找 rawpy 异常对应的状态码"""
    for cls in type(error).__mro__:
        code = _ERROR_CODES.get(cls.__name__)
        if code is not None:
            return code
    return LIBRAW_UNSPECIFIED_ERROR


def params_to_kwargs(params: OutputParams) -> Dict[str, Any]:
    """
    OutputParams -> rawpy.Params 关键字参数（纯数值，枚举转换由调用方完成）

    只传递显式设置过的可选参数，其余交给 rawpy 的默认值。
    """
    kwargs = {
        'half_size': bool(params.half_size),
        'four_color_rgb': bool(params.four_color_rgb),
        'use_camera_wb': bool(params.use_camera_wb),
        'use_auto_wb': bool(params.use_auto_wb),
        'output_color': params.output_color,
        'output_bps': params.output_bps,
        'no_auto_bright': bool(params.no_auto_bright),
        'auto_bright_thr': params.auto_bright_thr,
        'adjust_maximum_thr': params.adjust_maximum_thr,
        'bright': params.bright,
        'highlight_mode': params.highlight,
        'no_auto_scale': bool(params.no_auto_scale),
        'median_filter_passes': params.med_passes,
        'dcb_enhance': bool(params.dcb_enhance_fl),
    }
    if params.threshold:
        kwargs['noise_thr'] = params.threshold
    if params.user_qual >= 0:
        kwargs['demosaic_algorithm'] = params.user_qual
    if params.dcb_iterations >= 0:
        kwargs['dcb_iterations'] = params.dcb_iterations
    if params.fbdd_noiserd:
        kwargs['fbdd_noise_reduction'] = params.fbdd_noiserd
    if params.user_flip >= 0:
        kwargs['user_flip'] = params.user_flip
    if params.user_black >= 0:
        kwargs['user_black'] = params.user_black
    if params.user_sat > 0:
        kwargs['user_sat'] = params.user_sat
    if any(params.user_mul):
        kwargs['user_wb'] = list(params.user_mul)
    if params.exp_correc:
        kwargs['exp_shift'] = params.exp_shift
        kwargs['exp_preserve_highlights'] = params.exp_preser
    if params.gamm[0] > 0:
        # rawpy 的 gamma 是 (幂, 斜率)，引擎存的是幂的倒数
        kwargs['gamma'] = (1.0 / params.gamm[0], params.gamm[1])
    red, blue = params.aber[0], params.aber[2]
    if red > 0 and blue > 0 and (red, blue) != (1.0, 1.0):
        kwargs['chromatic_aberration'] = (1.0 / red, 1.0 / blue)
    if params.bad_pixels:
        kwargs['bad_pixels_path'] = params.bad_pixels.value
    return kwargs


def _build_params(kwargs: Dict[str, Any]) -> "rawpy.Params":
    kwargs = dict(kwargs)
    kwargs['output_color'] = rawpy.ColorSpace(kwargs['output_color'])
    if 'demosaic_algorithm' in kwargs:
        kwargs['demosaic_algorithm'] = rawpy.DemosaicAlgorithm(kwargs['demosaic_algorithm'])
    if 'fbdd_noise_reduction' in kwargs:
        kwargs['fbdd_noise_reduction'] = rawpy.FBDDNoiseReductionMode(kwargs['fbdd_noise_reduction'])
    try:
        kwargs['highlight_mode'] = rawpy.HighlightMode(kwargs['highlight_mode'])
    except ValueError:
        # 3..9 是重建模式，rawpy 接受原始整数
        pass
    return rawpy.Params(**kwargs)


class RawpyEngine:
    """rawpy.RawPy 的引擎包装器"""

    def __init__(self, logger: Optional[Logger] = None):
        self._raw: Optional[rawpy.RawPy] = None
        self._imgdata = ImageData()
        self._logger = logger

    @property
    def imgdata(self) -> ImageData:
        return self._imgdata

    # ------------------------------------------------------------------
    # 阶段
    # ------------------------------------------------------------------

    def open_buffer(self, data: bytes) -> int:
        self.recycle()
        raw = rawpy.RawPy()
        try:
            raw.open_buffer(io.BytesIO(data))
        except rawpy.LibRawError as e:
            raw.close()
            return status_from_error(e)
        self._raw = raw
        self._snapshot_basic()
        # 色彩数据在 open 阶段就已填充，unpack 之后再刷新一次
        self._snapshot_color()
        return LIBRAW_SUCCESS

    def unpack(self) -> int:
        if self._raw is None:
            return LIBRAW_OUT_OF_ORDER_CALL
        try:
            self._raw.unpack()
        except rawpy.LibRawError as e:
            return status_from_error(e)
        self._snapshot_color()
        return LIBRAW_SUCCESS

    def dcraw_process(self, params: OutputParams) -> int:
        if self._raw is None:
            return LIBRAW_OUT_OF_ORDER_CALL
        self._report_unsupported(params)
        try:
            rawpy_params = _build_params(params_to_kwargs(params))
        except (ValueError, TypeError, AttributeError, rawpy.NotSupportedError) as e:
            # 超出 rawpy 枚举范围的取值无法传给引擎，按引擎失败上报
            if self._logger:
                self._logger.error(f"  ❌ [rawpy] Decode parameters rejected: {e}")
            return status_from_error(e)
        try:
            self._raw.dcraw_process(rawpy_params)
        except rawpy.LibRawError as e:
            return status_from_error(e)
        return LIBRAW_SUCCESS

    def dcraw_make_mem_image(self) -> Optional[ProcessedImage]:
        if self._raw is None:
            return None
        try:
            arr = self._raw.dcraw_make_mem_image()
        except rawpy.LibRawError:
            return None
        if arr is None:
            return None

        arr = np.ascontiguousarray(arr)
        height, width = arr.shape[:2]
        colors = arr.shape[2] if arr.ndim == 3 else 1
        data = arr.tobytes()
        return ProcessedImage(
            width=width,
            height=height,
            colors=colors,
            bits=arr.dtype.itemsize * 8,
            data_size=len(data),
            data=data,
        )

    def dcraw_clear_mem(self, image: ProcessedImage) -> None:
        # rawpy 已经把渲染结果拷成 numpy 数组，这里只需断开引用
        image.data = b''

    def unpack_thumb(self) -> int:
        if self._raw is None:
            return LIBRAW_OUT_OF_ORDER_CALL
        try:
            thumb = self._raw.extract_thumb()
        except rawpy.LibRawError as e:
            return status_from_error(e)

        info = ThumbnailInfo()
        fmt_name = getattr(thumb.format, 'name', '')
        info.tformat = _THUMB_FORMAT_CODES.get(fmt_name, 0)
        if isinstance(thumb.data, np.ndarray):
            bitmap = np.ascontiguousarray(thumb.data)
            info.theight, info.twidth = bitmap.shape[:2]
            info.tcolors = bitmap.shape[2] if bitmap.ndim == 3 else 1
            if bitmap.dtype == np.uint16:
                info.tformat = 3
            info.thumb = bitmap.tobytes()
        else:
            info.thumb = bytes(thumb.data)
        info.tlength = len(info.thumb)
        self._imgdata.thumbnail = info
        return LIBRAW_SUCCESS

    def recycle(self) -> None:
        if self._raw is not None:
            self._raw.close()
            self._raw = None
        self._imgdata = ImageData()

    def close(self) -> None:
        self.recycle()

    # ------------------------------------------------------------------
    # 状态快照
    # ------------------------------------------------------------------

    def _read(self, getter, default=None):
        try:
            return getter()
        except (AttributeError, rawpy.LibRawError) as e:
            if self._logger:
                self._logger.debug(f"  ⚠️  [rawpy] field unavailable: {e}")
            return default

    def _snapshot_basic(self) -> None:
        raw = self._raw
        data = ImageData()

        s = self._read(lambda: raw.sizes)
        if s is not None:
            data.sizes = ImageSizes(
                raw_height=s.raw_height,
                raw_width=s.raw_width,
                height=s.height,
                width=s.width,
                top_margin=s.top_margin,
                left_margin=s.left_margin,
                iheight=s.iheight,
                iwidth=s.iwidth,
                pixel_aspect=s.pixel_aspect,
                flip=s.flip,
            )

        # 相机参数对象需要 rawpy >= 0.20.0
        camera = self._read(lambda: raw.camera_params)
        data.idata = IParams(
            make=getattr(camera, 'make', '') or '',
            model=getattr(camera, 'model', '') or '',
            colors=self._read(lambda: raw.num_colors, 0),
        )

        other = self._read(lambda: raw.other_params)
        if other is not None:
            data.other = ImgOther(
                iso_speed=getattr(other, 'iso_speed', 0.0),
                shutter=getattr(other, 'shutter', 0.0),
                aperture=getattr(other, 'aperture', 0.0),
                focal_len=getattr(other, 'focal_len', 0.0),
                timestamp=getattr(other, 'timestamp', 0.0),
                shot_order=getattr(other, 'shot_order', 0),
                desc=getattr(other, 'desc', '') or '',
                artist=getattr(other, 'artist', '') or '',
            )
        self._imgdata = data

    def _snapshot_color(self) -> None:
        raw = self._raw
        color = ColorData()

        black = self._read(lambda: raw.black_level_per_channel)
        if black:
            color.black = int(min(black))
        white = self._read(lambda: raw.white_level)
        if white is not None:
            color.maximum = int(white)
            color.data_maximum = int(white)
            color.fmaximum = float(white)
        cam_mul = self._read(lambda: raw.camera_whitebalance)
        if cam_mul is not None:
            color.cam_mul = tuple(float(v) for v in cam_mul)
        pre_mul = self._read(lambda: raw.daylight_whitebalance)
        if pre_mul is not None:
            color.pre_mul = tuple(float(v) for v in pre_mul)
        self._imgdata.color = color

    def _report_unsupported(self, params: OutputParams) -> None:
        if not self._logger:
            return
        ignored = sorted(UNSUPPORTED_PARAMS.intersection(params.changed_fields()))
        if ignored:
            self._logger.warning(
                f"  ⚠️  [rawpy] Parameters not supported by rawpy were ignored: {', '.join(ignored)}"
            )
