"""Small shared helpers: features, listener registries, strings, kernel checks."""

from __future__ import annotations

import errno
import os
import secrets
import string
from enum import Enum, auto
from typing import Generic, TypeVar

from .errors import SystemJailError

_L = TypeVar("_L")

_TEMPLATE_SUFFIX = "XXXXXX"
_TEMPLATE_CHARS = string.ascii_letters + string.digits
_TEMPLATE_ATTEMPTS = 100


class Feature(Enum):
    """Isolation features that can be switched on."""

    PTRACE = auto()
    PERF = auto()
    SECCOMP = auto()
    PID_NAMESPACE = auto()
    NET_NAMESPACE = auto()
    IPC_NAMESPACE = auto()
    UTS_NAMESPACE = auto()
    USER_NAMESPACE = auto()
    MOUNT_NAMESPACE = auto()
    MOUNT_PROCFS = auto()
    CAPABILITY_DROP = auto()


class EventProvider(Generic[_L]):
    """Keeps an ordered list of listeners to notify."""

    @property
    def event_listeners(self) -> list[_L]:
        listeners = self.__dict__.get("_event_listeners")
        if listeners is None:
            listeners = self.__dict__["_event_listeners"] = []
        return listeners

    def add_event_listener(self, event_listener: _L | None) -> None:
        if event_listener is not None:
            self.event_listeners.append(event_listener)


def split(text: str, delimiter: str) -> list[str]:
    """Split ``text`` on ``delimiter``, dropping a trailing empty token."""
    if not delimiter:
        raise ValueError("empty delimiter")
    tokens = text.split(delimiter)
    if tokens[-1] == "":
        tokens.pop()
    return tokens


def create_temporary_directory(template: str = "/tmp/s2jail-XXXXXX") -> str:
    """Create a fresh directory from ``template``, whose last six characters are XXXXXX."""
    if not template.endswith(_TEMPLATE_SUFFIX):
        raise SystemJailError("mkdtemp failed", errno.EINVAL)
    prefix = template[: -len(_TEMPLATE_SUFFIX)]
    for _ in range(_TEMPLATE_ATTEMPTS):
        suffix = "".join(secrets.choice(_TEMPLATE_CHARS) for _ in _TEMPLATE_SUFFIX)
        path = prefix + suffix
        try:
            os.mkdir(path, 0o700)
        except FileExistsError:
            continue
        except OSError as exc:
            raise SystemJailError("mkdtemp failed", exc.errno or 0) from exc
        return path
    raise SystemJailError("mkdtemp failed", errno.EEXIST)


def check_kernel_version(
    major: int, minor: int, release_path: str = "/proc/sys/kernel/osrelease"
) -> bool:
    """Tell whether the running kernel is at least ``major.minor``."""
    try:
        with open(release_path) as release:
            content = release.read()
    except OSError:
        return False
    if not content:
        return False

    version = [int(part) for part in split(content.split("-", 1)[0], ".")]
    if not version:
        return False
    if version[0] != major:
        return version[0] > major
    return (version[1] if len(version) > 1 else 0) >= minor