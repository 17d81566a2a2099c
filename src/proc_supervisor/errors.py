"""进程监管异常类。

proc-supervisor errors v0.1.0
"""

from __future__ import annotations

import signal
from pathlib import Path
from typing import Sequence

__all__ = [
    "SupervisorError",
    "LaunchError",
    "ExitError",
    "SignalRegistrationError",
]


class SupervisorError(Exception):
    """proc-supervisor 基础异常。"""
    pass


class LaunchError(SupervisorError):
    """子进程无法启动（可执行文件不存在、工作目录无效、权限不足）。

    不区分具体原因，原始 OSError 通过 __cause__ 保留。

    Attributes:
        argv: 启动命令
        cwd: 工作目录
    """

    def __init__(self, argv: Sequence[str], cwd: str | Path, reason: str = "") -> None:
        self.argv = list(argv)
        self.cwd = str(cwd)
        message = f"failed to launch {self.argv[0] if self.argv else '<empty>'!r} in dir '{self.cwd}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ExitError(SupervisorError):
    """子进程以非零状态退出或被信号终止。

    Attributes:
        argv: 启动命令
        returncode: 退出码（负数表示被信号终止，与 subprocess 一致）
        signal: 终止信号（仅当 returncode 为负数时）
    """

    def __init__(self, argv: Sequence[str], returncode: int) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.signal: signal.Signals | None = None
        if returncode < 0:
            try:
                self.signal = signal.Signals(-returncode)
            except ValueError:
                self.signal = None

        if self.signal is not None:
            detail = f"killed by {self.signal.name}"
        else:
            detail = f"exit status {returncode}"
        super().__init__(f"{' '.join(self.argv)!r} failed: {detail}")

    @property
    def exit_code(self) -> int:
        """Shell 风格的退出码（信号终止时为 128 + signum）。"""
        if self.returncode < 0:
            return 128 - self.returncode
        return self.returncode


class SignalRegistrationError(SupervisorError):
    """操作系统拒绝注册信号监听。

    对等待器来说是致命错误，不做任何恢复。
    """
    pass
