"""proc-supervisor 应用入口。

包含监管流程（启动子进程 -> 等待关闭信号 -> 取消子进程）和命令行入口。

子命令:
    run   启动子进程并等待关闭信号，收到后取消子进程
    exec  运行子进程直到退出，透传退出码
    copy  递归复制目录
    ls    列出目录下的文件
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from . import __version__
from .config import CancelMode, Config, get_config
from .errors import ExitError, LaunchError, SignalRegistrationError
from .fs_utils import copy_files_recursive, iter_files
from .runtime import ProcessRunner, ProcessSpec
from .signal_waiter import wait_for_shutdown_signal

__all__ = ["supervise", "setup_logging", "build_parser", "main"]

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# 无法启动子进程时的退出码（与 shell 的 command not found 一致）
EXIT_LAUNCH_FAILED = 127


def supervise(spec: ProcessSpec, runner: ProcessRunner | None = None) -> signal.Signals:
    """启动子进程，阻塞到收到关闭信号，然后取消子进程。

    信号注册失败时同样会取消子进程，再抛出异常。

    Args:
        spec: 子进程规格
        runner: 进程运行器（默认从配置创建）

    Returns:
        触发关闭的信号

    Raises:
        LaunchError: 子进程无法启动
        SignalRegistrationError: 无法注册信号监听
    """
    runner = runner or ProcessRunner.from_config()
    handle = runner.start(spec)
    try:
        sig = wait_for_shutdown_signal()
    finally:
        handle.cancel()

    logger.info(f"Shutdown by {sig.name}, cancelled pid={handle.pid}")
    return sig


def setup_logging(config: Config) -> None:
    """配置日志输出。

    默认输出到 stderr（INFO）；PSUP_LOG_DEBUG 开启时输出到临时文件（DEBUG）。
    """
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 第三方库（anyio 等）保持 WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("proc_supervisor").setLevel(log_level)


def _add_process_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--cwd",
        type=Path,
        default=Path("."),
        help="working directory for the child (default: current directory)",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="executable and arguments, optionally after '--'",
    )


def build_parser() -> argparse.ArgumentParser:
    """构建命令行解析器。"""
    parser = argparse.ArgumentParser(
        prog="proc-supervisor",
        description="Run a child process and stop it on Ctrl+C / SIGTERM.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    run_parser = subparsers.add_parser(
        "run", help="launch a child and cancel it on a shutdown signal"
    )
    run_parser.add_argument(
        "--terminate",
        action="store_true",
        help="send a terminate request instead of a forced kill",
    )
    run_parser.add_argument(
        "--isolate",
        action="store_true",
        help="start the child in its own session and cancel the whole group",
    )
    _add_process_arguments(run_parser)

    exec_parser = subparsers.add_parser(
        "exec", help="run a child to completion and exit with its status"
    )
    _add_process_arguments(exec_parser)

    copy_parser = subparsers.add_parser("copy", help="copy a directory tree")
    copy_parser.add_argument("src", type=Path)
    copy_parser.add_argument("dst", type=Path)

    ls_parser = subparsers.add_parser("ls", help="list files under a directory")
    ls_parser.add_argument("dir", type=Path)

    return parser


def _command_spec(parser: argparse.ArgumentParser, args: argparse.Namespace) -> ProcessSpec:
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error(f"{args.subcommand}: missing command")
    return ProcessSpec(argv=command, cwd=args.cwd)


def _runner_for(args: argparse.Namespace, config: Config) -> ProcessRunner:
    runner = ProcessRunner.from_config(config)
    if getattr(args, "terminate", False):
        runner.cancel_mode = CancelMode.TERMINATE
    if getattr(args, "isolate", False):
        runner.isolate = True
    return runner


def _error(message: object) -> None:
    print(f"proc-supervisor: {message}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """主入口点。

    Returns:
        进程退出码
    """
    config = get_config()
    setup_logging(config)

    parser = build_parser()
    args = parser.parse_args(argv)
    logger.debug(f"Starting proc-supervisor {args.subcommand}: {config}")

    if args.subcommand == "run":
        spec = _command_spec(parser, args)
        try:
            sig = supervise(spec, _runner_for(args, config))
        except LaunchError as e:
            _error(e)
            return EXIT_LAUNCH_FAILED
        except SignalRegistrationError as e:
            _error(e)
            return 1
        return 128 + sig.value

    if args.subcommand == "exec":
        spec = _command_spec(parser, args)
        try:
            _runner_for(args, config).run(spec)
        except LaunchError as e:
            _error(e)
            return EXIT_LAUNCH_FAILED
        except ExitError as e:
            _error(e)
            return e.exit_code
        return 0

    if args.subcommand == "copy":
        try:
            n_copied = copy_files_recursive(args.src, args.dst)
        except OSError as e:
            _error(e)
            return 1
        print(f"copied {n_copied} files")
        return 0

    if args.subcommand == "ls":
        try:
            for rel_path in iter_files(args.dir):
                print(rel_path.as_posix())
        except OSError as e:
            _error(e)
            return 1
        return 0

    parser.error(f"unknown subcommand: {args.subcommand}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
