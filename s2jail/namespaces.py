"""Listeners that move the supervised program into fresh Linux namespaces."""

from __future__ import annotations

import os
import socket
from pathlib import Path

from . import logger
from .errors import with_errno_check
from .events import ExecuteEventListener
from .fd import FD
from .utils import Feature

JAIL_HOSTNAME = "s2jail"
"""Host and domain name given to the child inside its UTS namespace."""

# An id of -1 means "not set"; as an unsigned 32-bit id it reads 0xFFFFFFFF.
_UNSET_IDS = frozenset({-1, 0xFFFFFFFF})

_PROC_WRITE_FLAGS = os.O_WRONLY | os.O_CLOEXEC


def _log_entry(*args: object) -> None:
    logger.get_logger().log("TRACE", *args)


def _unshare(description: str, flag: int) -> None:
    with_errno_check(description, os.unshare, flag)


def _write_proc_file(path: Path, text: str) -> None:
    with FD.open(str(path), _PROC_WRITE_FLAGS) as fd:
        fd.write(text, allow_partial_writes=False)


def id_map(root_id: int, child_id: int = -1) -> str:
    """Text of a uid_map or gid_map: root maps to ``root_id``, id 1 to ``child_id`` if set."""
    lines = f"0 {root_id} 1\n"
    if child_id not in _UNSET_IDS:
        lines += f"1 {child_id} 1\n"
    return lines


class IPCNamespaceListener(ExecuteEventListener):
    """Gives the child its own System V IPC namespace."""

    feature = Feature.IPC_NAMESPACE

    def on_post_fork_child(self) -> None:
        _log_entry("IPCNamespaceListener.on_post_fork_child")
        _unshare("unshare newipc", os.CLONE_NEWIPC)


class NetNamespaceListener(ExecuteEventListener):
    """Gives the child its own, empty network namespace."""

    feature = Feature.NET_NAMESPACE

    def on_post_fork_child(self) -> None:
        _log_entry("NetNamespaceListener.on_post_fork_child")
        _unshare("unshare newnet", os.CLONE_NEWNET)


class PIDNamespaceListener(ExecuteEventListener):
    """Makes the child the first process of a new PID namespace.

    The namespace is entered before forking, so the forked child lands in it.
    Requires CAP_SYS_ADMIN.
    """

    feature = Feature.PID_NAMESPACE

    def on_pre_fork(self) -> None:
        _log_entry("PIDNamespaceListener.on_pre_fork")
        _unshare("unshare newpid", os.CLONE_NEWPID)


class UTSNamespaceListener(ExecuteEventListener):
    """Gives the child its own UTS namespace with a fixed host and domain name."""

    feature = Feature.UTS_NAMESPACE

    def __init__(
        self, hostname: str = JAIL_HOSTNAME, *, proc_sys: str | Path = "/proc/sys"
    ) -> None:
        self.hostname = hostname
        self.proc_sys = Path(proc_sys)

    def on_post_fork_child(self) -> None:
        _log_entry("UTSNamespaceListener.on_post_fork_child")
        _unshare("unshare newuts", os.CLONE_NEWUTS)
        with_errno_check("set hostname", socket.sethostname, self.hostname)
        with_errno_check(
            "set domainname",
            _write_proc_file,
            self.proc_sys / "kernel" / "domainname",
            self.hostname,
        )


class UserNamespaceListener(ExecuteEventListener):
    """Enters a new user namespace where root maps to an outside user.

    Unset outside ids (-1) for root default to the current uid and gid; unset
    ids for the child leave user 1 unmapped.
    """

    feature = Feature.USER_NAMESPACE

    def __init__(
        self,
        root_outside_uid: int = -1,
        root_outside_gid: int = -1,
        child_outside_uid: int = -1,
        child_outside_gid: int = -1,
        *,
        proc_self: str | Path = "/proc/self",
    ) -> None:
        self.root_outside_uid = root_outside_uid
        self.root_outside_gid = root_outside_gid
        self.child_outside_uid = child_outside_uid
        self.child_outside_gid = child_outside_gid
        self.proc_self = Path(proc_self)

    def on_pre_fork(self) -> None:
        _log_entry("UserNamespaceListener.on_pre_fork")
        uid = (
            os.getuid()
            if self.root_outside_uid in _UNSET_IDS
            else self.root_outside_uid
        )
        gid = (
            os.getgid()
            if self.root_outside_gid in _UNSET_IDS
            else self.root_outside_gid
        )

        _unshare("unshare newuser", os.CLONE_NEWUSER)

        self._write_id_map("uid_map", uid, self.child_outside_uid)
        self._write_set_groups()
        self._write_id_map("gid_map", gid, self.child_outside_gid)

    def _write_set_groups(self) -> None:
        _log_entry("UserNamespaceListener._write_set_groups")
        _write_proc_file(self.proc_self / "setgroups", "deny")

    def _write_id_map(self, file: str, root_id: int, child_id: int) -> None:
        _log_entry(
            "UserNamespaceListener._write_id_map, ", file, ", ", root_id, ", ", child_id
        )
        _write_proc_file(self.proc_self / file, id_map(root_id, child_id))