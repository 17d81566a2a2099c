"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import os
import signal
import sys
import threading
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from proc_supervisor.config import reload_config  # noqa: E402

PSUP_ENV_VARS = ("PSUP_CANCEL_MODE", "PSUP_ISOLATE", "PSUP_LOG_DEBUG")


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """每个测试使用干净的 PSUP_* 配置。"""
    for name in PSUP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def send_signal_later():
    """延迟向当前进程发送信号。

    返回 schedule(sig, delay) 函数；测试结束时取消未触发的定时器。
    """
    timers: list[threading.Timer] = []

    def schedule(sig: signal.Signals, delay: float) -> threading.Timer:
        timer = threading.Timer(delay, os.kill, args=(os.getpid(), sig))
        timer.daemon = True
        timers.append(timer)
        timer.start()
        return timer

    yield schedule

    for timer in timers:
        timer.cancel()
