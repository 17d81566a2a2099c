"""PSUP 环境变量配置管理。

环境变量:
    PSUP_CANCEL_MODE: 取消子进程的方式
        - kill = 强制终止 (SIGKILL / TerminateProcess) (默认)
        - terminate = 请求终止 (SIGTERM)

    PSUP_ISOLATE: 是否在新会话/进程组中启动子进程
        - true/1/yes = 隔离 (取消时终止整个进程组)
        - false/0/no = 不隔离 (默认，终端 Ctrl+C 同时送达子进程)

    PSUP_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

__all__ = ["Config", "CancelMode", "load_config", "get_config", "reload_config"]


class CancelMode(Enum):
    """子进程取消方式。

    - KILL: 强制终止，不给子进程清理机会
    - TERMINATE: 发送终止请求，由子进程自行退出
    """

    KILL = "kill"
    TERMINATE = "terminate"

    @classmethod
    def from_string(cls, value: str) -> "CancelMode":
        """从字符串解析模式。

        Args:
            value: 模式字符串 (kill/terminate)

        Returns:
            对应的 CancelMode 枚举值，无效值返回 KILL
        """
        value = value.lower().strip()
        for mode in cls:
            if mode.value == value:
                return mode
        return cls.KILL  # 默认值


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_cancel_mode(value: str | None) -> CancelMode:
    """解析取消模式环境变量。"""
    if not value:
        return CancelMode.KILL
    return CancelMode.from_string(value)


@dataclass
class Config:
    """PSUP 配置。

    Attributes:
        cancel_mode: 子进程取消方式
        isolate: 是否隔离子进程（新会话/进程组）
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    cancel_mode: CancelMode = CancelMode.KILL
    isolate: bool = False
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(cancel_mode={self.cancel_mode.value}, "
            f"isolate={self.isolate}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "proc-supervisor"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"psup_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("PSUP_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        cancel_mode=_parse_cancel_mode(os.environ.get("PSUP_CANCEL_MODE")),
        isolate=_parse_bool(os.environ.get("PSUP_ISOLATE"), default=False),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
