"""
解码设置叠加 (DecodeSettings Overlay)

把宿主传入的稀疏配置映射叠加到完整的 OutputParams 记录上。
这是一个尽力而为的过程：每个字段独立校验，形状不对、类型不对的值直接忽略，
永远不会因为某一个坏字段而中止整个叠加，也不会抛出异常。
"""
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Optional

from .params import OutputParams


def _to_int(value: Any) -> int:
    # bool 是 int 的子类，True/False 按 1/0 处理
    if isinstance(value, (str, bytes)):
        raise TypeError("strings are not coerced to numbers")
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, (str, bytes)):
        raise TypeError("strings are not coerced to numbers")
    return float(value)


def _is_array_like(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    # numpy 数组不是 Sequence，但支持 len() 和迭代
    return isinstance(value, Sequence) or (hasattr(value, '__len__') and hasattr(value, '__iter__'))


class _Field:
    def __init__(self, key: str, attr: str):
        self.key = key
        self.attr = attr

    def apply(self, params: OutputParams, value: Any) -> bool:
        raise NotImplementedError


class _ScalarField(_Field):
    def __init__(self, key: str, attr: str, coerce: Callable[[Any], Any]):
        super().__init__(key, attr)
        self.coerce = coerce

    def apply(self, params, value):
        try:
            setattr(params, self.attr, self.coerce(value))
        except (TypeError, ValueError, OverflowError):
            return False
        return True


class _ArrayField(_Field):
    def __init__(self, key: str, attr: str, arity: int, coerce: Callable[[Any], Any]):
        super().__init__(key, attr)
        self.arity = arity
        self.coerce = coerce

    def apply(self, params, value):
        if not _is_array_like(value) or len(value) != self.arity:
            return False
        try:
            items = tuple(self.coerce(v) for v in value)
        except (TypeError, ValueError, OverflowError):
            return False
        setattr(params, self.attr, items)
        return True


class _StringField(_Field):
    def apply(self, params, value):
        if not isinstance(value, str):
            return False
        getattr(params, self.attr).assign(value)
        return True


SETTINGS_FIELDS = [
    # -- 数组 --
    _ArrayField('greybox', 'greybox', 4, _to_int),
    _ArrayField('cropbox', 'cropbox', 4, _to_int),
    _ArrayField('aber', 'aber', 4, _to_float),
    _ArrayField('gamm', 'gamm', 6, _to_float),
    _ArrayField('userMul', 'user_mul', 4, _to_float),
    _ArrayField('userCblack', 'user_cblack', 4, _to_int),
    # -- 浮点 --
    _ScalarField('bright', 'bright', _to_float),
    _ScalarField('threshold', 'threshold', _to_float),
    _ScalarField('autoBrightThr', 'auto_bright_thr', _to_float),
    _ScalarField('adjustMaximumThr', 'adjust_maximum_thr', _to_float),
    _ScalarField('expShift', 'exp_shift', _to_float),
    _ScalarField('expPreser', 'exp_preser', _to_float),
    # -- 整数 --
    _ScalarField('halfSize', 'half_size', _to_int),
    _ScalarField('fourColorRgb', 'four_color_rgb', _to_int),
    _ScalarField('highlight', 'highlight', _to_int),
    _ScalarField('useAutoWb', 'use_auto_wb', _to_int),
    _ScalarField('useCameraWb', 'use_camera_wb', _to_int),
    _ScalarField('useCameraMatrix', 'use_camera_matrix', _to_int),
    _ScalarField('outputColor', 'output_color', _to_int),
    _ScalarField('outputBps', 'output_bps', _to_int),
    _ScalarField('outputTiff', 'output_tiff', _to_int),
    _ScalarField('outputFlags', 'output_flags', _to_int),
    _ScalarField('userFlip', 'user_flip', _to_int),
    _ScalarField('userQual', 'user_qual', _to_int),
    _ScalarField('userBlack', 'user_black', _to_int),
    _ScalarField('userSat', 'user_sat', _to_int),
    _ScalarField('medPasses', 'med_passes', _to_int),
    _ScalarField('noAutoBright', 'no_auto_bright', _to_int),
    _ScalarField('useFujiRotate', 'use_fuji_rotate', _to_int),
    _ScalarField('greenMatching', 'green_matching', _to_int),
    _ScalarField('dcbIterations', 'dcb_iterations', _to_int),
    _ScalarField('dcbEnhanceFl', 'dcb_enhance_fl', _to_int),
    _ScalarField('fbddNoiserd', 'fbdd_noiserd', _to_int),
    _ScalarField('expCorrec', 'exp_correc', _to_int),
    _ScalarField('noAutoScale', 'no_auto_scale', _to_int),
    _ScalarField('noInterpolation', 'no_interpolation', _to_int),
    # -- 字符串 --
    _StringField('outputProfile', 'output_profile'),
    _StringField('cameraProfile', 'camera_profile'),
    _StringField('badPixels', 'bad_pixels'),
    _StringField('darkFrame', 'dark_frame'),
]

RECOGNIZED_KEYS = frozenset(f.key for f in SETTINGS_FIELDS)


def apply_settings(params: OutputParams, raw_config: Optional[Any], logger=None) -> OutputParams:
    """
    把稀疏配置叠加到 params 上（原地修改并返回）

    Args:
        params: 目标参数记录
        raw_config: 宿主配置；None 或非映射类型时什么都不做
        logger: 可选日志处理器，用于报告被忽略的键

    Returns:
        OutputParams: 同一个 params 对象
    """
    if raw_config is None or not isinstance(raw_config, Mapping):
        return params

    for f in SETTINGS_FIELDS:
        if f.key not in raw_config:
            continue
        value = raw_config[f.key]
        if value is None:
            continue
        if not f.apply(params, value) and logger:
            logger.debug(f"  ⚠️  [Settings] Ignoring '{f.key}': unusable value {value!r}")

    if logger:
        unknown = [k for k in raw_config if k not in RECOGNIZED_KEYS]
        if unknown:
            logger.debug(f"  ⚠️  [Settings] Unrecognized keys ignored: {', '.join(map(str, unknown))}")

    return params
