"""Listeners enforcing time, output-size and memory limits on the child."""

from __future__ import annotations

import os
import resource
import signal
import time
from dataclasses import dataclass
from pathlib import Path

from . import logger
from .errors import SystemJailError, with_errno_check
from .events import ExecuteAction, ExecuteEvent, ExecuteEventListener
from .printer import KillReason, OutputBuilder, OutputSource
from .procfs import Field, read_procfs

TIMER_TICKING_INTERVAL_US = 200 * 1000
"""Period of the limit-checking timer after its first tick."""

MEMORY_LIMIT_MARGIN = 8 * 1024 * 1024
"""Bytes added to the address-space limit on top of the memory limit."""


def _log_entry(*args: object) -> None:
    logger.get_logger().log("TRACE", *args)


def _clock_ticks_per_second() -> int:
    return with_errno_check("sysconf", os.sysconf, "SC_CLK_TCK").value


@dataclass(frozen=True)
class TimeUsage:
    """Time used by the child so far, in microseconds."""

    real_time_us: int
    user_time_us: int
    sys_time_us: int


class TimeLimitListener(ExecuteEventListener, OutputSource):
    """Kills the child once it exceeds a real, user, system or user+system time limit.

    A limit of zero means no limit.
    """

    def __init__(
        self,
        r_timelimit_us: int,
        u_timelimit_us: int,
        s_timelimit_us: int,
        us_timelimit_us: int,
        *,
        proc_root: str | Path = "/proc",
    ) -> None:
        _log_entry(
            "TimeLimitListener, ",
            r_timelimit_us, ", ", u_timelimit_us, ", ",
            s_timelimit_us, ", ", us_timelimit_us,
        )
        self.r_timelimit_us = r_timelimit_us
        self.u_timelimit_us = u_timelimit_us
        self.s_timelimit_us = s_timelimit_us
        self.us_timelimit_us = us_timelimit_us
        self.proc_root = Path(proc_root)
        self.output_builder = OutputBuilder()
        self.child_pid = 0
        self.is_timer_created = False
        self._start_real_time_ns = time.monotonic_ns()

    def on_post_fork_parent(self, child_pid: int) -> None:
        self.child_pid = child_pid
        self._start_real_time_ns = time.monotonic_ns()

        limits = [
            limit
            for limit in (
                self.r_timelimit_us,
                self.u_timelimit_us,
                self.s_timelimit_us,
                self.us_timelimit_us,
            )
            if limit != 0
        ]
        if not limits:
            return

        first_tick_us = min(limits)
        with_errno_check(
            "setitimer",
            signal.setitimer,
            signal.ITIMER_REAL,
            first_tick_us / 1_000_000,
            TIMER_TICKING_INTERVAL_US / 1_000_000,
        )
        self.is_timer_created = True

    def on_sigalrm_signal(self) -> ExecuteAction:
        if not self.is_timer_created:
            return ExecuteAction.CONTINUE
        return self.verify_time_usage(self._time_usage())

    def on_post_execute(self) -> None:
        usage = self._time_usage()
        self.output_builder.set_real_time_microseconds(usage.real_time_us)
        self.output_builder.set_user_time_microseconds(usage.user_time_us)
        self.output_builder.set_sys_time_microseconds(usage.sys_time_us)
        self.verify_time_usage(usage)

    def verify_time_usage(self, time_usage: TimeUsage) -> ExecuteAction:
        """Record a TLE and ask for a kill if ``time_usage`` breaks a limit."""
        checks = (
            (self.r_timelimit_us, time_usage.real_time_us, "real time limit exceeded"),
            (self.u_timelimit_us, time_usage.user_time_us, "user time limit exceeded"),
            (self.s_timelimit_us, time_usage.sys_time_us, "system time limit exceeded"),
            (
                self.us_timelimit_us,
                time_usage.user_time_us + time_usage.sys_time_us,
                "user+system time limit exceeded",
            ),
        )
        for limit, used, comment in checks:
            if limit != 0 and used > limit:
                self.output_builder.set_kill_reason(KillReason.TLE, comment)
                return ExecuteAction.KILL
        return ExecuteAction.CONTINUE

    def close(self) -> None:
        """Disarm the limit-checking timer if it was started."""
        if self.is_timer_created:
            signal.setitimer(signal.ITIMER_REAL, 0)
            self.is_timer_created = False

    def __enter__(self) -> TimeLimitListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _real_time_usage_us(self) -> int:
        return (time.monotonic_ns() - self._start_real_time_ns) // 1000

    def _process_time_usage_us(self) -> tuple[int, int]:
        stat_path = self.proc_root / str(self.child_pid) / "stat"
        failure = f"Error reading {stat_path}"
        try:
            content = stat_path.read_text()
        except OSError as exc:
            raise SystemJailError(failure, exc.errno or 0) from exc

        # Fields after the parenthesised command name start at field 3 (state).
        _, paren, rest = content.rpartition(")")
        fields = rest.split()
        if not paren or len(fields) < 13:
            raise SystemJailError(failure, 0)
        try:
            u_ticks, s_ticks = int(fields[11]), int(fields[12])
        except ValueError as exc:
            raise SystemJailError(failure, 0) from exc

        ticks = _clock_ticks_per_second()
        return u_ticks * 1_000_000 // ticks, s_ticks * 1_000_000 // ticks

    def _time_usage(self) -> TimeUsage:
        real = self._real_time_usage_us()
        user, system = self._process_time_usage_us()
        return TimeUsage(real_time_us=real, user_time_us=user, sys_time_us=system)


class OutputLimitListener(ExecuteEventListener, OutputSource):
    """Caps the size of files the child writes; zero means no cap."""

    def __init__(self, output_limit_b: int) -> None:
        _log_entry("OutputLimitListener, ", output_limit_b)
        self.output_limit_b = output_limit_b
        self.child_pid = -1
        self.output_builder = OutputBuilder()

    def on_post_fork_child(self) -> None:
        _log_entry("OutputLimitListener.on_post_fork_child")
        if self.output_limit_b > 0:
            logger.debug("Seting limit ", "rlim_max", "=", self.output_limit_b)
            with_errno_check(
                "setrlimit file size",
                resource.setrlimit,
                resource.RLIMIT_FSIZE,
                (self.output_limit_b, self.output_limit_b),
            )

    def on_post_fork_parent(self, child_pid: int) -> None:
        _log_entry("OutputLimitListener.on_post_fork_parent, ", child_pid)
        self.child_pid = child_pid

    def on_execute_event(self, execute_event: ExecuteEvent) -> ExecuteAction:
        _log_entry("OutputLimitListener.on_execute_event")
        if self.output_limit_b > 0 and execute_event.signal == signal.SIGXFSZ:
            logger.info("Tracee got SIGXFSZ, assuming output limit exceeded")
            self.output_builder.set_kill_reason(
                KillReason.OLE, "output limit exceeded"
            )
            return ExecuteAction.KILL
        return ExecuteAction.CONTINUE


class MemoryLimitListener(ExecuteEventListener, OutputSource):
    """Tracks the child's peak memory and kills it above the limit; zero means no limit."""

    def __init__(self, memory_limit_kb: int, *, proc_root: str | Path = "/proc") -> None:
        _log_entry("MemoryLimitListener, ", memory_limit_kb)
        self.memory_limit_kb = memory_limit_kb
        self.memory_peak_kb = 0
        self.vm_peak_valid = False
        self.child_pid = -1
        self.proc_root = Path(proc_root)
        self.output_builder = OutputBuilder()

    def on_post_fork_child(self) -> None:
        _log_entry("MemoryLimitListener.on_post_fork_child")
        if self.memory_limit_kb <= 0:
            return
        address_space = self.memory_limit_kb * 1024 + MEMORY_LIMIT_MARGIN
        logger.debug("Seting address space limit ", "rlim_max", "=", address_space)
        with_errno_check(
            "setrlimit address space",
            resource.setrlimit,
            resource.RLIMIT_AS,
            (address_space, address_space),
        )
        logger.debug("Seting stack limit to infinity")
        with_errno_check(
            "setrlimit stack",
            resource.setrlimit,
            resource.RLIMIT_STACK,
            (resource.RLIM_INFINITY, resource.RLIM_INFINITY),
        )

    def on_post_fork_parent(self, child_pid: int) -> None:
        _log_entry("MemoryLimitListener.on_post_fork_parent, ", child_pid)
        self.child_pid = child_pid

    def on_post_exec(self, trace_event: object, tracee: object) -> None:
        """Mark peak readings trustworthy: the program image has been replaced."""
        self.vm_peak_valid = True

    def on_execute_event(self, execute_event: ExecuteEvent) -> ExecuteAction:
        _log_entry("MemoryLimitListener.on_execute_event")
        if not self.vm_peak_valid:
            return ExecuteAction.CONTINUE

        peak = read_procfs(self.child_pid, Field.VM_PEAK, proc_root=self.proc_root)
        self.memory_peak_kb = max(self.memory_peak_kb, peak)
        logger.debug("Read new memory peak ", "memory_peak_kb", "=", self.memory_peak_kb)

        self.output_builder.set_memory_peak(self.memory_peak_kb)
        if self.memory_limit_kb > 0 and self.memory_peak_kb > self.memory_limit_kb:
            self.output_builder.set_kill_reason(
                KillReason.MLE, "memory limit exceeded"
            )
            logger.debug(
                "Limit ", "memory_limit_kb", "=", self.memory_limit_kb,
                " exceeded, killing tracee",
            )
            return ExecuteAction.KILL
        return ExecuteAction.CONTINUE