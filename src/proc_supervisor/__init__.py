"""proc-supervisor - 受监管子进程运行器。

启动子进程（继承 stdout/stderr）、等待关闭信号、取消子进程。

环境变量:
    PSUP_CANCEL_MODE: 取消方式 kill | terminate (默认 kill)
    PSUP_ISOLATE: 是否隔离子进程 (默认 false)
    PSUP_LOG_DEBUG: 日志输出到临时文件 (默认 false)

用法:
    proc-supervisor run --cwd web -- npm run dev
"""

__version__ = "0.1.0"

from .errors import ExitError, LaunchError, SignalRegistrationError, SupervisorError
from .runtime import ProcessHandle, ProcessRunner, ProcessSpec, launch, run_and_wait
from .signal_waiter import wait_for_shutdown_signal, wait_for_shutdown_signal_async
from .app import main, supervise

__all__ = [
    "__version__",
    "ExitError",
    "LaunchError",
    "ProcessHandle",
    "ProcessRunner",
    "ProcessSpec",
    "SignalRegistrationError",
    "SupervisorError",
    "launch",
    "main",
    "run_and_wait",
    "supervise",
    "wait_for_shutdown_signal",
    "wait_for_shutdown_signal_async",
]
