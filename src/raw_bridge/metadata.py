"""
元数据投影 (Metadata Projector)

读取引擎的只读状态，生成一棵全新的嵌套字典。对引擎没有任何副作用。
基础块足够轻量，可以在批处理中逐帧调用；完整输出额外包含
colorData、commonMetadata 以及唯一一个按相机厂商匹配的 MakerNote 块。
"""
from dataclasses import fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import MAKER_PRIORITY, ROTATED_FLIP_CODES, THUMB_FORMAT_NAMES
from .imgdata import CommonMetadata, ImageData, ImageSizes


def oriented_size(sizes: ImageSizes):
    """按方向码修正后的 (width, height)；旋转 90/270 度时宽高互换"""
    if sizes.flip in ROTATED_FLIP_CODES:
        return sizes.height, sizes.width
    return sizes.width, sizes.height


def thumb_format_name(code: int) -> str:
    if 0 <= code < len(THUMB_FORMAT_NAMES):
        return THUMB_FORMAT_NAMES[code]
    return 'unknown'


def resolve_maker(make: Optional[str]) -> Optional[str]:
    """
    按固定优先级做大小写无关的子串匹配，返回厂商块的键

    Returns:
        str | None: 第一个命中的键，例如 'canon'；没有命中时为 None
    """
    if not make:
        return None
    make_lower = make.lower()
    for needle, key in MAKER_PRIORITY:
        if needle in make_lower:
            return key
    return None


def _to_plain(value: Any) -> Any:
    if is_dataclass(value):
        return project_record(value)
    if isinstance(value, (tuple, list)):
        return [_to_plain(v) for v in value]
    return value


def project_record(record) -> Dict[str, Any]:
    """把一个引擎结构体按字段顺序投影为字典；带 split 标记的数组拆成独立的键"""
    out = {}
    for f in fields(record):
        value = getattr(record, f.name)
        split_keys = f.metadata.get('split')
        if split_keys:
            for key, item in zip(split_keys, value):
                out[key] = item
        else:
            out[f.name] = _to_plain(value)
    return out


def _timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError, TypeError):
        return None


def project_basic(imgdata: ImageData) -> Dict[str, Any]:
    sizes = imgdata.sizes
    width, height = oriented_size(sizes)
    other = imgdata.other
    thumb = imgdata.thumbnail

    return {
        'width': width,
        'height': height,
        'raw_width': sizes.raw_width,
        'raw_height': sizes.raw_height,
        'top_margin': sizes.top_margin,
        'left_margin': sizes.left_margin,
        'camera_make': imgdata.idata.make,
        'camera_model': imgdata.idata.model,
        'iso_speed': other.iso_speed,
        'shutter': other.shutter,
        'aperture': other.aperture,
        'focal_len': other.focal_len,
        'timestamp': _timestamp(other.timestamp),
        'shot_order': other.shot_order,
        'desc': (other.desc or '').strip(),
        'artist': other.artist,
        'thumb_width': thumb.twidth,
        'thumb_height': thumb.theight,
        'thumb_format': thumb_format_name(thumb.tformat),
    }


def project_common(common: CommonMetadata) -> Dict[str, Any]:
    out = {}
    for f in fields(common):
        if f.name in ('afcount', 'afdata'):
            continue
        out[f.name] = getattr(common, f.name)

    # 引擎报告的条目数可能大于实际填充的条目
    count = max(0, min(common.afcount, len(common.afdata)))
    out['afdata'] = [project_record(item) for item in common.afdata[:count]]
    return out


def project_metadata(imgdata: ImageData, full_output: bool = False) -> Dict[str, Any]:
    """
    生成元数据树

    Args:
        imgdata: 引擎的只读状态
        full_output: False 时只输出基础块

    Returns:
        dict: 每次调用都是全新的对象
    """
    meta = project_basic(imgdata)
    if not full_output:
        return meta

    meta['colorData'] = project_record(imgdata.color)
    meta['commonMetadata'] = project_common(imgdata.makernotes.common)

    # 块是否出现只取决于厂商名是否匹配，不取决于引擎是否填充了数据
    maker_key = resolve_maker(imgdata.idata.make)
    if maker_key is not None:
        meta[maker_key] = project_record(getattr(imgdata.makernotes, maker_key))

    return meta
