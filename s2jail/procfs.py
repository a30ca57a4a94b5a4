"""Reading fields from /proc/<pid>/status."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

_DIGITS = {
    10: re.compile(r"[0-9]+"),
    16: re.compile(r"(?:0[xX])?([0-9a-fA-F]+)"),
}


class Field(Enum):
    """Supported /proc/<pid>/status fields: label and numeric base."""

    VM_PEAK = ("VmPeak", 10)
    VM_SIZE = ("VmSize", 10)
    SIG_CGT = ("SigCgt", 16)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def base(self) -> int:
        return self.value[1]


def _parse_leading_number(text: str, base: int) -> int:
    match = _DIGITS[base].match(text.lstrip())
    if match is None:
        raise ValueError(f"no number in {text!r}")
    return int(match.group(match.lastindex or 0), base)


def read_procfs(
    pid: int, field: Field, default: int = 0, proc_root: str | Path = "/proc"
) -> int:
    """Return ``field`` of process ``pid``, or ``default`` if it cannot be read."""
    status_path = Path(proc_root) / str(pid) / "status"
    try:
        with open(status_path) as status:
            lines = status.read().splitlines()
    except OSError:
        return default

    label = field.label
    for line in lines:
        if line.startswith(label):
            value = line[len(label) + 1 :].lstrip(" \t")
            if not value:
                raise ValueError(f"empty value for {label}")
            return _parse_leading_number(value, field.base)
    return default