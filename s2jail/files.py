"""Closes inherited descriptors in the child and silences its stderr."""

from __future__ import annotations

import errno
import os
from typing import Any

from . import logger
from .errors import SystemJailError, with_errno_check
from .events import ExecuteEventListener


def _log_trace(*args: Any) -> None:
    logger.get_logger().log("TRACE", *args)


class FilesListener(ExecuteEventListener):
    """Leaves the child only stdin, stdout and (optionally) stderr open."""

    DEV_NULL = "/dev/null"
    FDS_PATH = "/proc/self/fd/"

    def __init__(self, suppress_stderr: bool = True) -> None:
        self.suppress_stderr = suppress_stderr
        self.fds: list[int] = []
        self.devnull = -1

    def on_pre_fork(self) -> None:
        _log_trace("FilesListener.on_pre_fork")
        entries = with_errno_check(
            "open fds directory", os.listdir, self.FDS_PATH
        ).value
        for entry in entries:
            try:
                fd = int(entry)
            except ValueError:
                continue
            # Keep the standard streams and the log output.
            if 0 <= fd <= 2 or logger.is_logger_fd(fd):
                continue
            self.fds.append(fd)

        self.devnull = with_errno_check(
            "open /dev/null", os.open, self.DEV_NULL, os.O_WRONLY
        ).value

    def on_post_fork_child(self) -> None:
        _log_trace("FilesListener.on_post_fork_child")
        if self.suppress_stderr:
            with_errno_check("redirect stderr to /dev/null", os.dup2, self.devnull, 2)
        with_errno_check("close /dev/null", os.close, self.devnull)

        for fd in self.fds:
            while True:
                try:
                    with_errno_check("close fd", os.close, fd)
                except SystemJailError as exc:
                    if exc.errno == errno.EINTR:
                        continue
                    if exc.errno != errno.EBADF:
                        raise
                break