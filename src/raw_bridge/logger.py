"""
统一的日志处理模块
会话、批处理和 CLI 共用同一套接口，支持控制台、队列、回调三种输出方式
"""
from typing import Optional, Any

# 级别越高越重要；低于 min_level 的消息直接丢弃
LOG_LEVELS = {
    'DEBUG': 10,
    'INFO': 20,
    'SUCCESS': 25,
    'WARNING': 30,
    'ERROR': 40,
}


class Logger:
    """统一的日志处理器"""

    def __init__(
        self,
        log_target: Optional[Any] = None,
        file_id: Optional[str] = None,
        min_level: str = 'INFO',
    ):
        """
        Args:
            log_target: 日志输出目标，可以是：
                       - None: 使用 print
                       - Queue 对象: 使用 queue.put()，消息为 {'id', 'msg', 'level'} 字典
                       - Callable: 直接调用该函数
            file_id: 文件标识符，批处理时用来区分日志来源
            min_level: 最低输出级别
        """
        if min_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {min_level}")
        self.log_target = log_target
        self.file_id = file_id
        self.min_level = min_level

    def enabled_for(self, level: str) -> bool:
        return LOG_LEVELS.get(level, 0) >= LOG_LEVELS[self.min_level]

    def log(self, message: str, level: str = "INFO"):
        if not self.enabled_for(level):
            return

        if hasattr(self.log_target, 'put'):
            # 队列模式（多进程）：保留原始消息，由消费端决定格式
            self.log_target.put({
                'id': self.file_id,
                'msg': message,
                'level': level
            })
        elif callable(self.log_target):
            self.log_target(self._format_message(message))
        else:
            print(self._format_message(message))

    def _format_message(self, message: str) -> str:
        if self.file_id:
            return f"[{self.file_id}] {message}"
        return message

    def child(self, file_id: str) -> "Logger":
        """同一输出目标、不同文件标识的子日志器"""
        return Logger(self.log_target, file_id, self.min_level)

    def debug(self, message: str):
        self.log(message, "DEBUG")

    def info(self, message: str):
        self.log(message, "INFO")

    def error(self, message: str):
        self.log(message, "ERROR")

    def success(self, message: str):
        self.log(message, "SUCCESS")

    def warning(self, message: str):
        self.log(message, "WARNING")


def create_logger(
    log_target: Optional[Any] = None,
    file_id: Optional[str] = None,
    min_level: str = 'INFO',
) -> Logger:
    """工厂函数：创建日志处理器实例"""
    return Logger(log_target, file_id, min_level)
