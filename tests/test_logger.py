import errno
import os
import re
import stat

import pytest

from s2jail import logger
from s2jail.errors import SystemJailError
from s2jail.logger import FDLogger, FileLogger, Logger, VoidLogger

LINE_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{6}\t(\w+)\t(.*)\n$")


class CaptureLogger(Logger):
    def __init__(self):
        self.lines = []

    def is_logger_fd(self, fd):
        return fd == 42

    def _write(self, text):
        self.lines.append(text)


@pytest.fixture
def capture():
    previous = logger.get_logger()
    cap = CaptureLogger()
    logger.set_logger(cap)
    yield cap
    logger.set_logger(previous)


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    for fd in (r, w):
        try:
            os.close(fd)
        except OSError:
            pass


def test_line_format(capture):
    logger.debug("a", "b", 1)
    assert len(capture.lines) == 1
    match = LINE_RE.match(capture.lines[0])
    assert match is not None
    assert match.group(1) == "DEBUG"
    assert match.group(2) == "ab1"


def test_booleans_are_written_as_digits(capture):
    logger.info("x=", True, " y=", False)
    assert capture.lines[0].endswith("\tINFO\tx=1 y=0\n")


@pytest.mark.parametrize(
    "func, level",
    [
        (logger.debug, "DEBUG"),
        (logger.info, "INFO"),
        (logger.warn, "WARN"),
        (logger.error, "ERROR"),
    ],
)
def test_level_functions(capture, func, level):
    func("message")
    assert LINE_RE.match(capture.lines[-1]).group(1) == level


def test_set_logger_none_keeps_current(capture):
    logger.set_logger(None)
    assert logger.get_logger() is capture


def test_is_logger_fd_delegates(capture):
    assert logger.is_logger_fd(42) is True
    assert logger.is_logger_fd(3) is False


def test_void_logger_owns_no_fd():
    void = VoidLogger()
    void.log("INFO", "ignored")
    assert [void.is_logger_fd(fd) for fd in range(4)] == [False] * 4


def test_fd_logger_writes_to_pipe(pipe):
    r, w = pipe
    fd_logger = FDLogger(w)
    fd_logger.log("WARN", "pipe", " test")
    data = os.read(r, 4096).decode()
    assert LINE_RE.match(data).group(2) == "pipe test"
    assert fd_logger.is_logger_fd(w)
    assert not fd_logger.is_logger_fd(r)


def test_fd_logger_rejects_negative_fd():
    with pytest.raises(SystemJailError) as info:
        FDLogger(-1)
    assert "Invalid logger initialization" in str(info.value)


def test_owned_fd_is_closed(pipe):
    _, w = pipe
    with FDLogger(w, close=True) as fd_logger:
        fd_logger.log("INFO", "x")
    with pytest.raises(OSError) as info:
        os.fstat(w)
    assert info.value.errno == errno.EBADF


def test_unowned_fd_stays_open(pipe):
    _, w = pipe
    fd_logger = FDLogger(w)
    assert fd_logger.is_logger_fd(w) is True
    fd_logger.close()
    assert stat.S_ISFIFO(os.fstat(w).st_mode)


def test_file_logger_appends(tmp_path):
    path = tmp_path / "log.txt"
    with FileLogger(str(path)) as first:
        first.log("INFO", "one")
    with FileLogger(str(path)) as second:
        second.log("ERROR", "two")
    lines = path.read_text().splitlines(keepends=True)
    assert [LINE_RE.match(line).group(2) for line in lines] == ["one", "two"]


def test_file_logger_missing_directory(tmp_path):
    with pytest.raises(SystemJailError) as info:
        FileLogger(str(tmp_path / "missing" / "log.txt"))
    assert info.value.errno == errno.ENOENT