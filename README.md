# s2jail

s2jail is a Linux-only library of building blocks for supervising an
untrusted program: listeners that apply time, memory and output limits,
close inherited file descriptors, and move a process into fresh namespaces,
plus builders that render the outcome of a run in the report formats used by
programming-contest judges.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Listeners

A listener is a subclass of `s2jail.events.ExecuteEventListener`. It has one
hook for each stage of a run, and each has a default:

- `on_pre_fork()`, `on_post_fork_child()`, `on_post_fork_parent(child_pid)`
  and `on_post_execute()` write a trace line and do nothing else
- `on_execute_event(execute_event)`, `on_sigio_signal()` and
  `on_sigalrm_signal()` return `ExecuteAction.CONTINUE`

`ExecuteAction` is an `IntEnum` with `CONTINUE = 0` and `KILL = 1`, so the
strongest answer of several listeners is their `max()`. `ExecuteEvent` is a
dataclass describing a state change of a process (`pid`, `exit_status`,
`signal`, `exited`, `killed`, `stopped`, `trapped`).

Listeners included:

- `s2jail.limits.TimeLimitListener(r, u, s, us)`: real, user, system and
  user+system time limits in microseconds (0 means no limit). After the fork
  it arms a `SIGALRM` interval timer that first fires at the smallest limit
  and then every 200 ms; `on_sigalrm_signal` and `on_post_execute` read the
  child's times from `/proc/<pid>/stat` and record a `TLE`. `close()`
  disarms the timer; the listener is also a context manager.
- `s2jail.limits.MemoryLimitListener(memory_limit_kb)`: in the child, sets
  `RLIMIT_AS` to the limit plus an 8 MiB margin and lifts `RLIMIT_STACK`.
  Once `on_post_exec` has been called, each `on_execute_event` reads `VmPeak`
  and records an `MLE` above the limit.
- `s2jail.limits.OutputLimitListener(output_limit_b)`: sets `RLIMIT_FSIZE`
  in the child and records an `OLE` when an event carries `SIGXFSZ`.
- `s2jail.files.FilesListener(suppress_stderr=True)`: before the fork it
  lists open descriptors; in the child it closes all but 0-2 and the log
  descriptor, and can send stderr to `/dev/null`.
- `s2jail.namespaces`: `IPCNamespaceListener`, `NetNamespaceListener`,
  `UTSNamespaceListener` (host and domain name `s2jail`),
  `PIDNamespaceListener` (unshares before the fork) and
  `UserNamespaceListener` (writes `uid_map`, `setgroups` and `gid_map`;
  `id_map(root_id, child_id)` returns the map text).
- `s2jail.logger_listener.LoggerListener`: a debug line for every stage.

Listeners that report results derive from `s2jail.printer.OutputSource` and
are given a builder with `set_output_builder(builder)`.

## What the package does not do

There is no executor and no command-line program. Nothing here forks the
supervised program, waits on it, or routes signals: the caller drives the
listeners, calling each hook at the matching point of its own fork, `waitid`
and signal handling, and kills the child when a hook answers
`ExecuteAction.KILL`. There is no seccomp or ptrace support, and no mount
namespace or capability dropping.

## Reporting results

The builders in `s2jail.printer` collect the facts of a run and render a
report with `dump()`:

- `OITimeToolOutputBuilder`: `__RESULT__ <code> <ms> 0 <memory kB> <syscalls>`
  and a status line; `status_code()` gives the code
- `AugmentedOIOutputBuilder`: the same line led by a word such as `OK`,
  `RE`, `TLE` or `MLE` and the exit status
- `RealTimeOIOutputBuilder` and `UserTimeOIOutputBuilder`: as above, with
  wall-clock or user time
- `HumanReadableOIOutputBuilder`: a short summary for people

Time for the first three and the human summary comes from
`set_cycles_used`, at 2,000,000,000 instructions per second.

```python
from s2jail.printer import KillReason, OITimeToolOutputBuilder

builder = OITimeToolOutputBuilder()
builder.set_cycles_used(4_000_000_000)
builder.set_memory_peak(2048)
builder.set_kill_reason(KillReason.TLE, "time limit exceeded")
print(builder.dump())
# __RESULT__ 125 2000 0 2048 0
# time limit exceeded
```

The first kill reason recorded is kept and any later ones are ignored; the
first kill signal also sets the exit status to 128 plus the signal.

## Other helpers

- `s2jail.procfs.read_procfs(pid, field)` reads `VmPeak`, `VmSize` or
  `SigCgt` from `/proc/<pid>/status`, returning a default if it cannot.
- `s2jail.fd.FD` wraps a raw descriptor; `FD.open(path, flags)` gives one
  that closes itself.
- `s2jail.errors.with_errno_check(description, operation, *args)` turns an
  `OSError` into `SystemJailError` unless its errno is in `ignored_errnos`.
- `s2jail.utils` has `split`, `create_temporary_directory`,
  `check_kernel_version` and the `Feature` enum.

## Logging

`s2jail.logger` holds one process-wide logger. It discards everything by
default. To write to a file, install a `FileLogger`:

```python
from s2jail.logger import FileLogger, set_logger, info

set_logger(FileLogger("/tmp/s2jail.log"))
info("starting run")
```

Each line carries a timestamp, a level (`TRACE`, `DEBUG`, `INFO`, `WARN`,
`ERROR`) and the message.