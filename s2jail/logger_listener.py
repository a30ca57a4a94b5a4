"""Listener that logs every execution stage."""

from __future__ import annotations

from . import logger
from .events import ExecuteAction, ExecuteEvent, ExecuteEventListener


class LoggerListener(ExecuteEventListener):
    """Writes a debug line for each execution stage."""

    def _stage(self, stage: str, *details: object) -> None:
        logger.debug("Execution stage ", stage, *details)

    def on_pre_fork(self) -> None:
        self._stage("onPreFork")

    def on_post_fork_child(self) -> None:
        self._stage("onPostForkChild")

    def on_post_fork_parent(self, child_pid: int) -> None:
        self._stage("onPostForkParent, ", "child_pid", "=", child_pid)

    def on_execute_event(self, execute_event: ExecuteEvent) -> ExecuteAction:
        self._stage(
            "onExecuteEvent, ",
            "pid=", execute_event.pid,
            ", exitStatus=", execute_event.exit_status,
            ", signal=", execute_event.signal,
            ", exited=", execute_event.exited,
            ", killed=", execute_event.killed,
            ", stopped=", execute_event.stopped,
            ", trapped=", execute_event.trapped,
        )
        return ExecuteAction.CONTINUE

    def on_post_execute(self) -> None:
        self._stage("onPostExecute")