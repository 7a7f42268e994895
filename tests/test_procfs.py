"""Tests for the ProcFS source against a synthetic /proc tree."""

import os

import pytest
from fakes import socket_row, socket_table, stat_line, status_table

from zohd.procfs import ProcFS
from zohd.resolver import Resolver
from zohd.scanner import PortScanner


@pytest.fixture
def proc_root(tmp_path):
    """A minimal procfs layout with one process listening on 8000."""
    (tmp_path / "net").mkdir()
    (tmp_path / "net" / "tcp").write_text(socket_table(socket_row(8000, 4242)))
    (tmp_path / "uptime").write_text("1000.00 3500.00\n")
    (tmp_path / "self").mkdir()  # non-numeric entries are ignored

    proc = tmp_path / "321"
    (proc / "fd").mkdir(parents=True)
    (proc / "cmdline").write_bytes(b"/usr/bin/python3\0-m\0http.server\0")
    (proc / "stat").write_text(stat_line(321, "python3", 50_000))
    (proc / "status").write_text(status_table("python3", os.getuid()))
    os.symlink("/dev/null", proc / "fd" / "0")
    os.symlink("socket:[4242]", proc / "fd" / "3")
    return tmp_path


def test_socket_table(proc_root):
    """Test the raw table is returned as text."""
    fs = ProcFS(str(proc_root))

    assert fs.socket_table("tcp").splitlines()[1] == socket_row(8000, 4242)


def test_missing_socket_table_raises_oserror(proc_root):
    """Test a missing table raises OSError for the resolver to absorb."""
    with pytest.raises(OSError):
        ProcFS(str(proc_root)).socket_table("tcp6")


def test_pids_only_numeric(proc_root):
    assert list(ProcFS(str(proc_root)).pids()) == [321]


def test_pids_unreadable_root(tmp_path):
    with pytest.raises(OSError):
        ProcFS(str(tmp_path / "missing")).pids()


def test_fd_targets_reads_symlinks(proc_root):
    """Test dangling socket:[N] links are read, not followed."""
    targets = sorted(ProcFS(str(proc_root)).fd_targets(321))

    assert targets == ["/dev/null", "socket:[4242]"]


def test_cmdline_is_raw_bytes(proc_root):
    assert ProcFS(str(proc_root)).cmdline(321) == b"/usr/bin/python3\0-m\0http.server\0"


def test_uptime(proc_root):
    assert ProcFS(str(proc_root)).uptime() == 1000.0


def test_unparsable_uptime(proc_root):
    (proc_root / "uptime").write_text("garbage\n")

    with pytest.raises(OSError):
        ProcFS(str(proc_root)).uptime()


def test_clock_ticks_positive():
    assert ProcFS().clock_ticks() > 0


def test_user_name_unmapped_uid():
    assert ProcFS().user_name(2**31 - 7) is None


def test_resolves_through_synthetic_tree(proc_root):
    """Test the whole pipeline runs against a ProcFS root."""
    resolver = Resolver(ProcFS(str(proc_root)))

    assert resolver.resolve_owner(4242) == 321
    info = resolver.describe_process(321)
    assert info.name == "python3"
    assert info.launch_token == "/usr/bin/python3"
    assert info.start_time > 0


def test_scanner_check_through_synthetic_tree(proc_root):
    info = PortScanner(source=ProcFS(str(proc_root))).check(8000)

    assert info.is_in_use
    assert info.process is not None
    assert info.process.pid == 321
