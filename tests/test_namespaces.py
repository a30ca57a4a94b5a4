import errno
import os
from unittest.mock import patch

import pytest

from s2jail.errors import SystemJailError
from s2jail.namespaces import (
    JAIL_HOSTNAME,
    IPCNamespaceListener,
    NetNamespaceListener,
    PIDNamespaceListener,
    UTSNamespaceListener,
    UserNamespaceListener,
    id_map,
)
from s2jail.utils import Feature


@pytest.fixture
def proc_self(tmp_path):
    for name in ("uid_map", "gid_map", "setgroups"):
        (tmp_path / name).write_text("")
    return tmp_path


@pytest.fixture
def proc_sys(tmp_path):
    kernel = tmp_path / "kernel"
    kernel.mkdir()
    (kernel / "domainname").write_text("")
    return tmp_path


def test_id_map_root_only():
    assert id_map(1000) == "0 1000 1\n"


def test_id_map_with_child():
    assert id_map(1000, 2000) == "0 1000 1\n1 2000 1\n"


@pytest.mark.parametrize("unset", [-1, 0xFFFFFFFF])
def test_id_map_unset_child_is_omitted(unset):
    assert id_map(7, unset) == "0 7 1\n"


@pytest.mark.parametrize(
    "listener_cls, flag, feature",
    [
        (IPCNamespaceListener, os.CLONE_NEWIPC, Feature.IPC_NAMESPACE),
        (NetNamespaceListener, os.CLONE_NEWNET, Feature.NET_NAMESPACE),
    ],
)
def test_post_fork_child_unshares(listener_cls, flag, feature):
    listener = listener_cls()
    with patch("os.unshare") as unshare:
        listener.on_post_fork_child()
    unshare.assert_called_once_with(flag)
    assert listener.feature is feature


def test_pid_namespace_unshares_before_fork():
    listener = PIDNamespaceListener()
    with patch("os.unshare") as unshare:
        listener.on_pre_fork()
    unshare.assert_called_once_with(os.CLONE_NEWPID)
    assert listener.feature is Feature.PID_NAMESPACE


def test_unshare_failure_raises_system_error():
    listener = NetNamespaceListener()
    failure = PermissionError(errno.EPERM, os.strerror(errno.EPERM))
    with patch("os.unshare", side_effect=failure):
        with pytest.raises(SystemJailError) as info:
            listener.on_post_fork_child()
    assert info.value.errno == errno.EPERM


def test_uts_sets_host_and_domain_name(proc_sys):
    listener = UTSNamespaceListener(proc_sys=proc_sys)
    with patch("os.unshare") as unshare, patch("socket.sethostname") as sethostname:
        listener.on_post_fork_child()
    unshare.assert_called_once_with(os.CLONE_NEWUTS)
    sethostname.assert_called_once_with(JAIL_HOSTNAME)
    assert (proc_sys / "kernel" / "domainname").read_text() == JAIL_HOSTNAME
    assert listener.feature is Feature.UTS_NAMESPACE


def test_uts_missing_domainname_file_raises(tmp_path):
    listener = UTSNamespaceListener(proc_sys=tmp_path)
    with patch("os.unshare"), patch("socket.sethostname"):
        with pytest.raises(SystemJailError) as info:
            listener.on_post_fork_child()
    assert info.value.errno == errno.ENOENT


def test_user_namespace_defaults_to_current_ids(proc_self):
    listener = UserNamespaceListener(proc_self=proc_self)
    with patch("os.unshare") as unshare:
        listener.on_pre_fork()
    unshare.assert_called_once_with(os.CLONE_NEWUSER)
    assert (proc_self / "uid_map").read_text() == f"0 {os.getuid()} 1\n"
    assert (proc_self / "gid_map").read_text() == f"0 {os.getgid()} 1\n"
    assert (proc_self / "setgroups").read_text() == "deny"
    assert listener.feature is Feature.USER_NAMESPACE


def test_user_namespace_explicit_ids(proc_self):
    listener = UserNamespaceListener(1000, 1001, 2000, 2001, proc_self=proc_self)
    with patch("os.unshare"):
        listener.on_pre_fork()
    assert (proc_self / "uid_map").read_text() == "0 1000 1\n1 2000 1\n"
    assert (proc_self / "gid_map").read_text() == "0 1001 1\n1 2001 1\n"


def test_user_namespace_root_only_mapping(proc_self):
    listener = UserNamespaceListener(1000, 1001, proc_self=proc_self)
    with patch("os.unshare"):
        listener.on_pre_fork()
    assert (proc_self / "uid_map").read_text() == "0 1000 1\n"
    assert (proc_self / "gid_map").read_text() == "0 1001 1\n"


def test_user_namespace_missing_map_file_raises(tmp_path):
    listener = UserNamespaceListener(proc_self=tmp_path)
    with patch("os.unshare"):
        with pytest.raises(SystemJailError) as info:
            listener.on_pre_fork()
    assert info.value.errno == errno.ENOENT


def test_user_namespace_unshare_failure_writes_nothing(proc_self):
    listener = UserNamespaceListener(1000, 1001, proc_self=proc_self)
    failure = OSError(errno.EINVAL, os.strerror(errno.EINVAL))
    with patch("os.unshare", side_effect=failure):
        with pytest.raises(SystemJailError) as info:
            listener.on_pre_fork()
    assert info.value.errno == errno.EINVAL
    assert (proc_self / "uid_map").read_text() == ""
    assert (proc_self / "setgroups").read_text() == ""