"""
解码参数记录
与引擎的输出参数结构一一对应，所有字段都有引擎默认值
"""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from .resources import AllocationTracker, OwnedString

UINT_MAX = 0xFFFFFFFF
# 引擎用这个哨兵值表示"未指定的分通道黑电平"
CBLACK_UNSET = -1000001

STRING_FIELDS = ('output_profile', 'camera_profile', 'bad_pixels', 'dark_frame')


@dataclass
class OutputParams:
    # -- 定长数组 --
    greybox: Tuple[int, int, int, int] = (0, 0, UINT_MAX, UINT_MAX)
    cropbox: Tuple[int, int, int, int] = (0, 0, UINT_MAX, UINT_MAX)
    aber: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    gamm: Tuple[float, float, float, float, float, float] = (0.45, 4.5, 0.0, 0.0, 0.0, 0.0)
    user_mul: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    user_cblack: Tuple[int, int, int, int] = (CBLACK_UNSET,) * 4

    # -- 浮点 --
    bright: float = 1.0
    threshold: float = 0.0
    auto_bright_thr: float = 0.01
    adjust_maximum_thr: float = 0.75
    exp_shift: float = 1.0
    exp_preser: float = 0.0

    # -- 整数 (含布尔开关) --
    half_size: int = 0
    four_color_rgb: int = 0
    highlight: int = 0
    use_auto_wb: int = 0
    use_camera_wb: int = 0
    use_camera_matrix: int = 1
    output_color: int = 1
    output_bps: int = 8
    output_tiff: int = 0
    output_flags: int = 1
    user_flip: int = -1
    user_qual: int = -1
    user_black: int = -1
    user_sat: int = -1
    med_passes: int = 0
    no_auto_bright: int = 0
    use_fuji_rotate: int = 1
    green_matching: int = 0
    dcb_iterations: int = -1
    dcb_enhance_fl: int = 0
    fbdd_noiserd: int = 0
    exp_correc: int = 0
    no_auto_scale: int = 0
    no_interpolation: int = 0

    # -- 自有字符串 --
    output_profile: OwnedString = field(default_factory=OwnedString)
    camera_profile: OwnedString = field(default_factory=OwnedString)
    bad_pixels: OwnedString = field(default_factory=OwnedString)
    dark_frame: OwnedString = field(default_factory=OwnedString)

    @classmethod
    def defaults(cls, tracker: Optional[AllocationTracker] = None) -> "OutputParams":
        """全新的默认参数记录，字符串字段的分配记入 tracker"""
        return cls(**{name: OwnedString(tracker) for name in STRING_FIELDS})

    def release_strings(self) -> None:
        for name in STRING_FIELDS:
            getattr(self, name).release()

    def to_dict(self) -> Dict[str, Any]:
        """普通值视图；字符串字段展开为 str 或 None"""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = value.value if isinstance(value, OwnedString) else value
        return out

    def changed_fields(self) -> Dict[str, Any]:
        """与引擎默认值不同的字段"""
        baseline = OutputParams().to_dict()
        return {k: v for k, v in self.to_dict().items() if baseline[k] != v}
