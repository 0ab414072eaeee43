# __init__.py
"""
Raw Bridge - RAW 解码会话工具包
"""

from .engine import RawEngine, strerror
from .exceptions import (
    EngineOpenError,
    ProcessError,
    RawBridgeError,
    SessionClosedError,
    ThumbnailError,
    UnpackError,
)
from .logger import Logger, create_logger
from .metadata import project_metadata
from .params import OutputParams
from .session import RawSession
from .settings import apply_settings

__all__ = [
    # 会话
    'RawSession',
    # 引擎
    'RawEngine',
    'strerror',
    # 参数与设置
    'OutputParams',
    'apply_settings',
    # 元数据
    'project_metadata',
    # 异常
    'RawBridgeError',
    'EngineOpenError',
    'UnpackError',
    'ProcessError',
    'ThumbnailError',
    'SessionClosedError',
    # 日志
    'Logger',
    'create_logger',
]
