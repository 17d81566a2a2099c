"""Runtime module for supervised subprocess management.

This module provides child process launch with inherited standard streams,
cancellation handles, and blocking run-to-completion.
"""

from __future__ import annotations

from .process_runner import (
    ProcessHandle,
    ProcessRunner,
    ProcessSpec,
    launch,
    run_and_wait,
)

__all__ = [
    "ProcessHandle",
    "ProcessRunner",
    "ProcessSpec",
    "launch",
    "run_and_wait",
]
