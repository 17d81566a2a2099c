"""关闭信号等待模块。

阻塞调用线程，直到收到外部终止信号：
- SIGINT: 用户中断 (Ctrl+C)
- SIGQUIT: 强制退出请求 (Ctrl+\\)，SIGKILL 无法被用户进程捕获，以此代替
- SIGTERM: 终止请求

信号监听在函数作用域内获取（anyio.open_signal_receiver），
等待结束后立即释放，不保留任何全局状态。

典型用法（配合 launch 返回的取消句柄）:
    ```python
    cancel = launch("web", "npm", "run", "dev")
    wait_for_shutdown_signal()
    cancel()
    ```
"""

from __future__ import annotations

import logging
import signal
import sys
from collections.abc import Iterable
from enum import Enum
from typing import Any

import anyio

from .errors import SignalRegistrationError

__all__ = [
    "SHUTDOWN_SIGNALS",
    "WaitState",
    "wait_for_shutdown_signal",
    "wait_for_shutdown_signal_async",
]

logger = logging.getLogger(__name__)


def _default_shutdown_signals() -> tuple[signal.Signals, ...]:
    """当前平台上可注册的关闭信号。"""
    if sys.platform == "win32":
        return (signal.SIGINT, signal.SIGBREAK, signal.SIGTERM)
    return (signal.SIGINT, signal.SIGQUIT, signal.SIGTERM)


SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = _default_shutdown_signals()


class WaitState(Enum):
    """等待器状态。

    WAITING -> SIGNALED 每次调用恰好发生一次。
    """

    WAITING = "waiting"
    SIGNALED = "signaled"


def _restore_handlers(previous: dict[signal.Signals, Any]) -> None:
    """恢复等待前的信号处理器。

    处理器由 C 代码设置（getsignal 返回 None）时无法恢复，跳过。
    """
    for sig, handler in previous.items():
        if handler is None or signal.getsignal(sig) is handler:
            continue
        try:
            signal.signal(sig, handler)
        except (OSError, ValueError) as e:
            logger.debug(f"Error restoring {sig.name} handler: {e}")


async def wait_for_shutdown_signal_async(
    signals: Iterable[signal.Signals] | None = None,
) -> signal.Signals:
    """在已有事件循环中等待关闭信号。

    必须在主线程中调用（操作系统只向主线程投递信号处理）。

    Args:
        signals: 要监听的信号（默认 SHUTDOWN_SIGNALS）

    Returns:
        收到的信号

    Raises:
        SignalRegistrationError: 操作系统拒绝注册信号监听
    """
    wanted = tuple(signals) if signals is not None else SHUTDOWN_SIGNALS
    names = ", ".join(s.name for s in wanted)
    state = WaitState.WAITING

    # 保存调用方的处理器，释放注册后恢复
    previous = {sig: signal.getsignal(sig) for sig in wanted}

    try:
        with anyio.open_signal_receiver(*wanted) as received:
            logger.debug(f"Waiting for shutdown signal ({names}), state={state.value}")
            async for signum in received:
                sig = signal.Signals(signum)
                state = WaitState.SIGNALED
                logger.info(f"{sig.name} received, state={state.value}")
                return sig
    except (NotImplementedError, RuntimeError, ValueError, OSError) as e:
        logger.error(f"Failed to register shutdown signals ({names}): {e}")
        raise SignalRegistrationError(
            f"cannot register shutdown signals ({names}): {e}"
        ) from e
    finally:
        _restore_handlers(previous)

    # 信号接收器不会在未收到信号时结束迭代
    raise SignalRegistrationError(f"signal receiver closed without a signal ({names})")


def wait_for_shutdown_signal(
    signals: Iterable[signal.Signals] | None = None,
) -> signal.Signals:
    """阻塞调用线程，直到收到任一关闭信号。

    单次触发：收到第一个信号即返回，并释放信号注册。
    没有超时，也无法以编程方式提前结束等待。

    Args:
        signals: 要监听的信号（默认 SHUTDOWN_SIGNALS）

    Returns:
        收到的信号

    Raises:
        SignalRegistrationError: 操作系统拒绝注册信号监听（致命，不重试），
            或当前线程已在运行事件循环（此时应使用 wait_for_shutdown_signal_async）
    """
    try:
        return anyio.run(wait_for_shutdown_signal_async, signals)
    except RuntimeError as e:
        # 注册失败已在协程内转换，这里只剩事件循环重入
        logger.error(f"Cannot wait for shutdown signals in this thread: {e}")
        raise SignalRegistrationError(
            f"cannot wait for shutdown signals from a running event loop: {e}"
        ) from e
