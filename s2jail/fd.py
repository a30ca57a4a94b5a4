"""Owned wrapper around a raw file descriptor."""

from __future__ import annotations

import errno
import fcntl
import os

from .errors import JailError, SystemJailError, with_errno_check


class FD:
    """A file descriptor that can write whole strings and optionally closes itself."""

    def __init__(self, fd: int, close: bool = False) -> None:
        if fd < 0:
            raise JailError("tried to wrap a negative fd")
        self._fd = fd
        self._owns_fd = close

    def close(self) -> None:
        """Close the descriptor; a second call does nothing."""
        if self._fd >= 0:
            with_errno_check("close", os.close, self._fd)
            self._fd = -1

    def write(self, data: str | bytes, allow_partial_writes: bool = True) -> None:
        """Write all of ``data``, retrying on EAGAIN and EINTR.

        When partial writes are not allowed, a single short write raises.
        """
        payload = data.encode() if isinstance(data, str) else bytes(data)
        view = memoryview(payload)
        total = len(payload)
        written = 0
        while written < total:
            result = with_errno_check(
                "write",
                os.write,
                self._fd,
                view[written:],
                ignored_errnos=(errno.EAGAIN, errno.EINTR),
            ).value
            if result:
                written += result
            if not allow_partial_writes and written != total:
                raise SystemJailError(f"Partial write: {written}/{total}", 0)

    def __lshift__(self, data: str | bytes) -> FD:
        self.write(data, allow_partial_writes=False)
        return self

    def fileno(self) -> int:
        return self._fd

    def __int__(self) -> int:
        return self._fd

    def good(self) -> bool:
        """Tell whether the descriptor is still open."""
        if self._fd < 0:
            return False
        code = with_errno_check(
            "fcntl",
            fcntl.fcntl,
            self._fd,
            fcntl.F_GETFD,
            ignored_errnos=(errno.EBADF, errno.EINTR, errno.EAGAIN),
        ).errno
        return code != errno.EBADF

    @classmethod
    def open(cls, path: str, flags: int, mode: int | None = None) -> FD:
        """Open ``path`` and return a descriptor that closes itself."""
        args = (path, flags) if mode is None else (path, flags, mode)
        fd = with_errno_check(f"open {path}", os.open, *args).value
        return cls(fd, close=True)

    def __enter__(self) -> FD:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_owns_fd", False):
            try:
                self.close()
            except (JailError, OSError):
                pass