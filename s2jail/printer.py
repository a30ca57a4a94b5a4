"""Result builders that render a run's outcome in several report formats."""

from __future__ import annotations

from enum import Enum, auto


class KillReason(Enum):
    """Why the supervised program was stopped."""

    NONE = auto()
    RE = auto()
    RV = auto()
    TLE = auto()
    MLE = auto()
    OLE = auto()


_KILL_REASON_NAMES = {
    KillReason.NONE: "OK",
    KillReason.RE: "RE",
    KillReason.RV: "RV",
    KillReason.TLE: "TLE",
    KillReason.MLE: "MLE",
    KillReason.OLE: "OLE",
}

_STATUS_CODES = {
    KillReason.NONE: 0,
    KillReason.RE: 100,
    KillReason.RV: 121,
    KillReason.TLE: 125,
    KillReason.MLE: 124,
    KillReason.OLE: 120,
}


def kill_reason_name(reason: KillReason) -> str:
    """Short report name of ``reason``."""
    return _KILL_REASON_NAMES[reason]


class OutputBuilder:
    """Collects run results; this base ignores them all and renders nothing."""

    def set_cycles_used(self, cycles_used: int) -> OutputBuilder:
        return self

    def set_real_time_microseconds(self, time: int) -> OutputBuilder:
        return self

    def set_user_time_microseconds(self, time: int) -> OutputBuilder:
        return self

    def set_sys_time_microseconds(self, time: int) -> OutputBuilder:
        return self

    def set_memory_peak(self, memory_peak_kb: int) -> OutputBuilder:
        return self

    def set_exit_status(self, exit_status: int) -> OutputBuilder:
        return self

    def set_kill_signal(self, kill_signal: int) -> OutputBuilder:
        return self

    def set_kill_reason(self, reason: KillReason, comment: str) -> OutputBuilder:
        return self

    def dump(self) -> str:
        return ""


class OIModelOutputBuilder(OutputBuilder):
    """Shared state and status text of the contest-style report formats."""

    CYCLES_PER_SECOND = 2_000_000_000

    def __init__(self) -> None:
        self.milliseconds_elapsed = 0
        self.real_milliseconds_elapsed = 0
        self.user_milliseconds_elapsed = 0
        self.sys_milliseconds_elapsed = 0
        self.memory_peak_kb = 0
        self.syscalls_counter = 0
        self.exit_status = 0
        self.kill_signal = 0
        self.kill_reason = KillReason.NONE
        self.kill_reason_comment = ""

    def set_cycles_used(self, cycles_used: int) -> OutputBuilder:
        self.milliseconds_elapsed = cycles_used * 1000 // self.CYCLES_PER_SECOND
        return self

    def set_real_time_microseconds(self, time: int) -> OutputBuilder:
        self.real_milliseconds_elapsed = time // 1000
        return self

    def set_user_time_microseconds(self, time: int) -> OutputBuilder:
        self.user_milliseconds_elapsed = time // 1000
        return self

    def set_sys_time_microseconds(self, time: int) -> OutputBuilder:
        self.sys_milliseconds_elapsed = time // 1000
        return self

    def set_memory_peak(self, memory_peak_kb: int) -> OutputBuilder:
        self.memory_peak_kb = memory_peak_kb
        return self

    def set_exit_status(self, exit_status: int) -> OutputBuilder:
        if self.exit_status == 0:
            self.exit_status = exit_status
        return self

    def set_kill_signal(self, kill_signal: int) -> OutputBuilder:
        if self.kill_signal == 0:
            self.kill_signal = kill_signal
            self.set_exit_status(128 + kill_signal)
        return self

    def set_kill_reason(self, reason: KillReason, comment: str) -> OutputBuilder:
        # Only the first kill reason is remembered.
        if self.kill_reason is KillReason.NONE:
            self.kill_reason = reason
            self.kill_reason_comment = comment
        return self

    def status(self) -> str:
        """One-line human description of the outcome."""
        if self.kill_reason is not KillReason.NONE:
            return self.kill_reason_comment
        if self.kill_signal > 0:
            return f"process exited due to signal {self.kill_signal}"
        if self.exit_status > 0:
            return f"runtime error {self.exit_status}"
        return "ok"

    def _effective_reason(self) -> KillReason:
        if self.kill_reason is KillReason.NONE and (
            self.kill_signal > 0 or self.exit_status > 0
        ):
            return KillReason.RE
        return self.kill_reason

    def _dump_with_time(self, milliseconds: int) -> str:
        name = kill_reason_name(self._effective_reason())
        return (
            f"{name} {self.exit_status} {milliseconds} 0 "
            f"{self.memory_peak_kb} {self.syscalls_counter}\n{self.status()}\n"
        )


class OITimeToolOutputBuilder(OIModelOutputBuilder):
    """Report in the format of the classic oitimetool."""

    FORMAT_NAME = "oitt"

    def dump(self) -> str:
        return (
            f"__RESULT__ {self.status_code()} {self.milliseconds_elapsed} 0 "
            f"{self.memory_peak_kb} {self.syscalls_counter}\n{self.status()}\n"
        )

    def status_code(self) -> int:
        """Numeric result code: signal number, 200 + exit status, or reason code."""
        if self.kill_reason is KillReason.NONE:
            # A kill signal also sets the exit status, so it is checked first.
            if self.kill_signal > 0:
                return self.kill_signal
            if self.exit_status > 0:
                return 200 + self.exit_status
        return _STATUS_CODES[self.kill_reason]


class AugmentedOIOutputBuilder(OIModelOutputBuilder):
    """Report with a named verdict and instruction-counted time."""

    FORMAT_NAME = "oiaug"

    def dump(self) -> str:
        return self._dump_with_time(self.milliseconds_elapsed)


class HumanReadableOIOutputBuilder(OIModelOutputBuilder):
    """Short report meant to be read by a person."""

    FORMAT_NAME = "human"

    def dump(self) -> str:
        seconds = self.milliseconds_elapsed / 1000
        return (
            "\n-------------------------\n"
            f"Result: {self.status()}\n"
            f"Time used: {seconds:g}s\n"
            f"Memory used: {self.memory_peak_kb // 1024}MiB\n"
        )


class RealTimeOIOutputBuilder(OIModelOutputBuilder):
    """Report with a named verdict and wall-clock time."""

    FORMAT_NAME = "oireal"

    def dump(self) -> str:
        return self._dump_with_time(self.real_milliseconds_elapsed)


class UserTimeOIOutputBuilder(OIModelOutputBuilder):
    """Report with a named verdict and user CPU time."""

    FORMAT_NAME = "oiuser"

    def dump(self) -> str:
        return self._dump_with_time(self.user_milliseconds_elapsed)


class OutputSource:
    """Something that reports results into an output builder."""

    output_builder: OutputBuilder | None = None

    def set_output_builder(self, output_builder: OutputBuilder | None) -> None:
        self.output_builder = output_builder