"""Execution events, the actions listeners answer with, and listener bases."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from . import logger


def _log_entry(listener: object, hook: str) -> None:
    logger.get_logger().log("TRACE", type(listener).__name__, ".", hook)


class ExecuteAction(IntEnum):
    """What the executor should do next; a larger value wins."""

    CONTINUE = 0
    KILL = 1


@dataclass
class ExecuteEvent:
    """A state change of a supervised process, as reported by waitid."""

    pid: int = -1
    exit_status: int = 0
    signal: int = 0
    exited: bool = False
    killed: bool = False
    stopped: bool = False
    trapped: bool = False


class ExecuteEventListener:
    """Hooks called by the executor at each stage; by default they only trace."""

    def on_pre_fork(self) -> None:
        _log_entry(self, "on_pre_fork")

    def on_post_fork_child(self) -> None:
        _log_entry(self, "on_post_fork_child")

    def on_post_fork_parent(self, child_pid: int) -> None:
        _log_entry(self, "on_post_fork_parent")

    def on_execute_event(self, execute_event: ExecuteEvent) -> ExecuteAction:
        return ExecuteAction.CONTINUE

    def on_sigio_signal(self) -> ExecuteAction:
        return ExecuteAction.CONTINUE

    def on_sigalrm_signal(self) -> ExecuteAction:
        return ExecuteAction.CONTINUE

    def on_post_execute(self) -> None:
        _log_entry(self, "on_post_execute")


class MountEventListener:
    """Notified when the mount setup changes where the program lives."""

    def on_program_name_change(self, new_program_name: str) -> None:
        _log_entry(self, "on_program_name_change")