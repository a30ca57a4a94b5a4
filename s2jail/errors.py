"""Exception types and errno-aware call helpers."""

from __future__ import annotations

import inspect
import os
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from . import logger


def _log_trace(*args: Any) -> None:
    logger.get_logger().log("TRACE", *args)


class JailError(Exception):
    """Base error; every instance is logged when created."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        logger.error("Exception: ", message)


class SystemJailError(JailError):
    """An operating-system call failed."""

    def __init__(self, message: str, errno: int = 0) -> None:
        super().__init__(
            f"System error occured: {message}: error {errno}: {os.strerror(errno)}"
        )
        self.errno = errno


class AssertionJailError(JailError):
    """An internal consistency check failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        logger.error(message)


def check_assert(condition: object, comment: str | None = None) -> None:
    """Raise AssertionJailError naming the caller's location if ``condition`` is false."""
    if condition:
        return
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    where = (
        f"{caller.f_code.co_filename}:{caller.f_lineno}"
        if caller is not None
        else "<unknown>"
    )
    if comment is None:
        raise AssertionJailError(f"Assertion failed at {where}")
    raise AssertionJailError(f"Assertion {comment} failed at {where}")


@dataclass(frozen=True)
class CheckedResult:
    """Outcome of a checked call: its value and the errno it tolerated."""

    value: Any
    errno: int = 0


def with_errno_check(
    description: str,
    operation: Callable[..., Any],
    *args: Any,
    ignored_errnos: Iterable[int] = (),
) -> CheckedResult:
    """Call ``operation``; turn an OSError into SystemJailError unless its errno is ignored."""
    _log_trace(description)
    try:
        value = operation(*args)
    except OSError as exc:
        code = exc.errno or 0
        if code in set(ignored_errnos):
            _log_trace("Operation failed with ignored errno ", os.strerror(code))
            return CheckedResult(None, code)
        raise SystemJailError(
            f"{description} failed: {os.strerror(code)}", code
        ) from exc
    _log_trace("Operation returned ", value)
    return CheckedResult(value, 0)