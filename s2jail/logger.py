"""Process-wide logging with pluggable sinks."""

from __future__ import annotations

import errno
import os
import time
from abc import ABC, abstractmethod

ENABLE_TRACE = True

_FALLBACK_STAMP = "0000-00-00 00:00:00.000000"


def _format_arg(arg: object) -> str:
    if isinstance(arg, bool):
        return "1" if arg else "0"
    return str(arg)


def _timestamp() -> str:
    seconds, micros = divmod(time.time_ns() // 1000, 1_000_000)
    try:
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(seconds))
    except (ValueError, OverflowError, OSError):
        return _FALLBACK_STAMP
    return f"{stamp}.{micros:06d}"


class Logger(ABC):
    """Formats log lines and hands them to a sink."""

    def log(self, level: str, *args: object) -> None:
        body = "".join(_format_arg(arg) for arg in args)
        self._write(f"{_timestamp()}\t{level}\t{body}\n")

    @abstractmethod
    def is_logger_fd(self, fd: int) -> bool:
        """Tell whether ``fd`` is the descriptor this logger writes to."""

    @abstractmethod
    def _write(self, text: str) -> None:
        """Emit one formatted line."""


class VoidLogger(Logger):
    """Logger that discards everything."""

    def is_logger_fd(self, fd: int) -> bool:
        return False

    def _write(self, text: str) -> None:
        pass


class FDLogger(Logger):
    """Logger writing to a raw file descriptor."""

    def __init__(self, fd: int, close: bool = False) -> None:
        if fd < 0:
            from .errors import SystemJailError

            raise SystemJailError("Invalid logger initialization", errno.EBADF)
        self._fd = fd
        self._owns_fd = close

    def is_logger_fd(self, fd: int) -> bool:
        return fd == self._fd

    def _write(self, text: str) -> None:
        view = memoryview(text.encode())
        while view:
            try:
                written = os.write(self._fd, view)
            except (BlockingIOError, InterruptedError):
                continue
            except OSError:
                break
            view = view[written:]

    def close(self) -> None:
        """Close the descriptor if this logger owns it."""
        if self._owns_fd and self._fd >= 0:
            fd, self._fd = self._fd, -1
            os.close(fd)

    def __enter__(self) -> FDLogger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_owns_fd", False):
            try:
                self.close()
            except OSError:
                pass


class FileLogger(FDLogger):
    """Logger appending to a file it opens itself."""

    def __init__(self, file_name: str = "/dev/null") -> None:
        flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND | os.O_CLOEXEC
        try:
            fd = os.open(file_name, flags, 0o640)
        except OSError as exc:
            from .errors import SystemJailError

            raise SystemJailError(
                "Invalid logger initialization", exc.errno or 0
            ) from exc
        super().__init__(fd, close=True)


_logger: Logger | None = None


def set_logger(logger: Logger | None) -> None:
    """Install ``logger`` as the process-wide logger; ``None`` is ignored."""
    global _logger
    if logger is not None:
        _logger = logger


def get_logger() -> Logger:
    """Return the process-wide logger, creating a silent one if needed."""
    global _logger
    if _logger is None:
        _logger = VoidLogger()
    return _logger


def trace(*args: object) -> None:
    if ENABLE_TRACE:
        get_logger().log("TRACE", *args)


def debug(*args: object) -> None:
    get_logger().log("DEBUG", *args)


def info(*args: object) -> None:
    get_logger().log("INFO", *args)


def warn(*args: object) -> None:
    get_logger().log("WARN", *args)


def error(*args: object) -> None:
    get_logger().log("ERROR", *args)


def is_logger_fd(fd: int) -> bool:
    return get_logger().is_logger_fd(fd)