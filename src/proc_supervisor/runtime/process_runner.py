"""Process runner for supervised child processes.

proc-supervisor runtime module v0.1.0

This module provides:
- Launching a child in a working directory with inherited stdout/stderr
- A cancellation handle that requests termination without waiting
- Blocking run-to-completion with exit status checking
- Optional subprocess isolation (new session/process group)

Key design points:
- The child writes straight to the parent's stdout/stderr file descriptors,
  so its output appears inline with the parent's own output
- Cancellation is best-effort and idempotent: a second call, or a call after
  the child already exited, does nothing
- Launch failures of any kind surface as a single LaunchError
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..config import CancelMode, Config, get_config
from ..errors import ExitError, LaunchError

__all__ = [
    "ProcessHandle",
    "ProcessRunner",
    "ProcessSpec",
    "launch",
    "run_and_wait",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process
        env: Environment variables (None = inherit parent)
    """

    argv: list[str]
    cwd: Path
    env: Mapping[str, str] | None = None

    @property
    def command_line(self) -> str:
        """Shell-quoted command line, for logging only."""
        return shlex.join(self.argv)


class ProcessHandle:
    """A running child process started by ProcessRunner.

    The handle owns the underlying Popen object. Its cancel() method is the
    cancellation handle returned by launch().

    Attributes:
        pid: OS process identifier
        cwd: Working directory the child was started in
        argv: Command line the child was started with
    """

    def __init__(
        self,
        process: subprocess.Popen,
        spec: ProcessSpec,
        cancel_mode: CancelMode = CancelMode.KILL,
        isolated: bool = False,
    ) -> None:
        self._process = process
        self._spec = spec
        self._cancel_mode = cancel_mode
        self._isolated = isolated
        self._cancelled = False

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def cwd(self) -> Path:
        return self._spec.cwd

    @property
    def argv(self) -> list[str]:
        return list(self._spec.argv)

    @property
    def returncode(self) -> int | None:
        """Exit status, or None while the child is still running."""
        return self._process.returncode

    @property
    def running(self) -> bool:
        return self._process.poll() is None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def poll(self) -> int | None:
        return self._process.poll()

    def wait(self, timeout: float | None = None) -> int:
        """Block until the child exits and return its exit status.

        Raises:
            subprocess.TimeoutExpired: If timeout elapses first
        """
        return self._process.wait(timeout=timeout)

    def cancel(self) -> None:
        """Request termination of the child without waiting for it to exit.

        Safe to call more than once and after the child exited on its own;
        those calls are no-ops. An isolated child's process group is still
        signalled after the leader exited, so its descendants are stopped too.
        """
        if self._cancelled:
            logger.debug(f"Cancel already requested pid={self.pid}")
            return
        self._cancelled = True

        group_cancel = self._isolated and not IS_WINDOWS
        if self._process.poll() is not None and not group_cancel:
            logger.debug(
                f"Subprocess already exited pid={self.pid} "
                f"returncode={self._process.returncode}"
            )
            return

        logger.debug(
            f"Cancelling subprocess pid={self.pid} mode={self._cancel_mode.value}"
        )
        try:
            if IS_WINDOWS:
                self._windows_cancel()
            else:
                self._posix_cancel()
        except ProcessLookupError:
            # Exited between poll() and the signal, or the group is empty
            logger.debug(f"Subprocess already exited pid={self.pid}")

    def __call__(self) -> None:
        self.cancel()

    def _posix_cancel(self) -> None:
        """Send SIGKILL or SIGTERM, to the whole group when isolated."""
        sig = signal.SIGKILL if self._cancel_mode is CancelMode.KILL else signal.SIGTERM

        if self._isolated:
            try:
                # pgid equals pid because of start_new_session; the group
                # outlives its leader while any member is alive
                os.killpg(self.pid, sig)
                logger.debug(f"Sent {sig.name} to process group pgid={self.pid}")
                return
            except ProcessLookupError:
                raise
            except OSError as e:
                logger.debug(f"killpg failed, falling back to send_signal: {e}")

        self._process.send_signal(sig)
        logger.debug(f"Sent {sig.name} to pid={self.pid}")

    def _windows_cancel(self) -> None:
        """Terminate on Windows (CTRL_BREAK_EVENT for isolated terminate)."""
        if self._cancel_mode is CancelMode.TERMINATE and self._isolated:
            try:
                # Works because we used CREATE_NEW_PROCESS_GROUP
                os.kill(self.pid, signal.CTRL_BREAK_EVENT)
                logger.debug(f"Sent CTRL_BREAK_EVENT to pid={self.pid}")
                return
            except OSError as e:
                logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")

        self._process.kill()
        logger.debug(f"Called kill() on pid={self.pid}")

    def __repr__(self) -> str:
        status = "running" if self._process.returncode is None else f"exited({self._process.returncode})"
        return f"ProcessHandle(pid={self.pid}, argv={self._spec.argv[0]}, status={status})"


@dataclass
class ProcessRunner:
    """Launches child processes with inherited stdout/stderr.

    Example:
        runner = ProcessRunner(cancel_mode=CancelMode.TERMINATE)
        handle = runner.start(ProcessSpec(argv=["npm", "run", "dev"], cwd=Path("web")))
        try:
            wait_for_shutdown_signal()
        finally:
            handle.cancel()

    Attributes:
        cancel_mode: How cancel() stops the child (forced kill or terminate request)
        isolate: Start the child in a new session/process group and cancel the
            whole group
    """

    cancel_mode: CancelMode = CancelMode.KILL
    isolate: bool = False

    @classmethod
    def from_config(cls, config: Config | None = None) -> ProcessRunner:
        """Create a runner using PSUP_* settings."""
        config = config or get_config()
        return cls(cancel_mode=config.cancel_mode, isolate=config.isolate)

    def start(self, spec: ProcessSpec) -> ProcessHandle:
        """Spawn the child and return without waiting for it.

        Args:
            spec: Process specification

        Returns:
            Handle owning the running child

        Raises:
            LaunchError: If the process could not be spawned
        """
        if not spec.argv:
            raise LaunchError(spec.argv, spec.cwd, "empty command")

        kwargs = self._build_subprocess_kwargs(spec)

        logger.info(f"running: {spec.command_line} in dir '{spec.cwd}'")

        # Keep parent output ordered before the child's
        for stream in (sys.stdout, sys.stderr):
            if stream is not None:
                stream.flush()

        try:
            process = subprocess.Popen(spec.argv, cwd=spec.cwd, **kwargs)
        except (OSError, ValueError) as e:
            reason = getattr(e, "strerror", None) or str(e)
            logger.debug(f"Launch failed argv={spec.argv[0]} cwd={spec.cwd}: {e}")
            raise LaunchError(spec.argv, spec.cwd, reason) from e

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} cwd={spec.cwd}"
        )
        return ProcessHandle(
            process,
            spec,
            cancel_mode=self.cancel_mode,
            isolated=self.isolate,
        )

    def run(self, spec: ProcessSpec, *, check: bool = True) -> int:
        """Spawn the child and block until it exits.

        If the waiting thread is interrupted (KeyboardInterrupt or any other
        exception), the child is cancelled before the exception propagates.

        Args:
            spec: Process specification
            check: Raise ExitError on a non-zero exit status

        Returns:
            The child's exit status

        Raises:
            LaunchError: If the process could not be spawned
            ExitError: If check is set and the child did not exit cleanly
        """
        handle = self.start(spec)
        try:
            returncode = handle.wait()
        except BaseException:
            logger.debug(f"Interrupted while waiting for pid={handle.pid}")
            handle.cancel()
            raise

        logger.debug(
            f"Subprocess completed pid={handle.pid} returncode={returncode}"
        )
        if check and returncode != 0:
            raise ExitError(spec.argv, returncode)
        return returncode

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build platform-specific Popen kwargs.

        stdout/stderr stay None so the child inherits the parent's
        descriptors. stdin is DEVNULL so the child never competes with the
        parent for terminal input.
        """
        kwargs: dict[str, Any] = {
            "stdin": subprocess.DEVNULL,
            "stdout": None,
            "stderr": None,
        }

        if spec.env is not None:
            kwargs["env"] = dict(spec.env)

        if self.isolate:
            if IS_WINDOWS:
                kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
            else:
                # POSIX: start_new_session (equivalent to setsid)
                kwargs["start_new_session"] = True

        return kwargs


def _make_spec(
    working_dir: str | os.PathLike[str],
    executable: str | os.PathLike[str],
    args: tuple[str | os.PathLike[str], ...],
) -> ProcessSpec:
    argv = [os.fspath(executable), *(os.fspath(a) for a in args)]
    return ProcessSpec(argv=argv, cwd=Path(working_dir))


def launch(
    working_dir: str | os.PathLike[str],
    executable: str | os.PathLike[str],
    *args: str | os.PathLike[str],
) -> Callable[[], None]:
    """Start executable in working_dir and return its cancellation handle.

    Does not wait for the process. Calling the returned function requests
    termination (forced kill unless PSUP_CANCEL_MODE=terminate) and returns
    immediately.

    Raises:
        LaunchError: If the process could not be spawned
    """
    runner = ProcessRunner.from_config()
    handle = runner.start(_make_spec(working_dir, executable, args))
    return handle.cancel


def run_and_wait(
    working_dir: str | os.PathLike[str],
    executable: str | os.PathLike[str],
    *args: str | os.PathLike[str],
) -> None:
    """Run executable in working_dir and block until it exits.

    Raises:
        LaunchError: If the process could not be spawned
        ExitError: If the process exited with a non-zero or abnormal status
    """
    runner = ProcessRunner.from_config()
    runner.run(_make_spec(working_dir, executable, args))
