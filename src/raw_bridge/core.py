import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import numpy as np

from .logger import create_logger
from .session import RawSession

# ==========================================
#              文件级处理函数
# ==========================================

# 会话工厂：测试或自定义引擎时可以替换
SessionFactory = Callable[..., RawSession]


@contextmanager
def open_session(
    raw_path: str,
    settings: Optional[Dict[str, Any]] = None,
    logger=None,
    session_factory: Optional[SessionFactory] = None,
) -> Iterator[RawSession]:
    """读取 RAW 文件并产出已经 open 的会话，退出时释放全部资源"""
    with open(raw_path, 'rb') as f:
        data = f.read()

    factory = session_factory or RawSession
    with factory(logger=logger) as session:
        session.open(data, settings)
        yield session


def read_metadata(
    raw_path: str,
    full_output: bool = False,
    settings: Optional[Dict[str, Any]] = None,
    log_queue: Optional[object] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Dict[str, Any]:
    filename = os.path.basename(raw_path)
    logger = create_logger(log_queue, filename)

    logger.info(f"🧪 [Raw Bridge] Reading metadata: {raw_path}")
    with open_session(raw_path, settings, logger, session_factory) as session:
        meta = session.metadata(full_output)

    meta['file'] = filename
    return meta


def render_image(
    raw_path: str,
    output_path: str,
    settings: Optional[Dict[str, Any]] = None,
    log_queue: Optional[object] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Optional[Dict[str, Any]]:
    """
    完整解码并把像素保存为 .npy（形状为 height x width x colors）

    Returns:
        dict | None: 图像描述（不含像素数据）；引擎无法渲染时为 None
    """
    filename = os.path.basename(raw_path)
    logger = create_logger(log_queue, filename)

    logger.info(f"🧪 [Raw Bridge] Rendering: {raw_path}")
    with open_session(raw_path, settings, logger, session_factory) as session:
        image = session.image_data()

    if image is None:
        logger.warning("  ⚠️  No rendered image produced.")
        return None

    pixels = image['data'].reshape(image['height'], image['width'], image['colors'])
    logger.info(f"  💾 Saving to {os.path.basename(output_path)}...")
    np.save(output_path, pixels)

    return {k: v for k, v in image.items() if k != 'data'}


def extract_thumbnail(
    raw_path: str,
    output_path: str,
    log_queue: Optional[object] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Dict[str, Any]:
    """提取内嵌缩略图：JPEG 原样写出，位图保存为 .npy"""
    filename = os.path.basename(raw_path)
    logger = create_logger(log_queue, filename)

    logger.info(f"🧪 [Raw Bridge] Extracting thumbnail: {raw_path}")
    with open_session(raw_path, None, logger, session_factory) as session:
        thumb = session.thumbnail_data()

    if thumb['format'] == 'jpeg':
        with open(output_path, 'wb') as f:
            f.write(thumb['data'].tobytes())
    else:
        pixels = thumb['data']
        if thumb['format'] == 'bitmap16':
            pixels = pixels.view(np.uint16)
        np.save(output_path, pixels.reshape(thumb['height'], thumb['width'], -1))
    logger.info(f"  💾 Saved {thumb['format']} thumbnail to {os.path.basename(output_path)}")

    return {k: v for k, v in thumb.items() if k != 'data'}
