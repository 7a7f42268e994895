"""Shared fixtures for zohd tests."""

import pytest
from fakes import FakeProcSource, socket_row, socket_table

from zohd.scanner import PortScanner


@pytest.fixture
def source() -> FakeProcSource:
    """
    A small host: nginx on 8080 (both families), node on 3000, and a
    listener on 5432 whose owner is not visible.
    """
    fake = FakeProcSource(
        tables={
            "tcp": socket_table(
                socket_row(8080, 1001),
                socket_row(3000, 2001),
                socket_row(5432, 3001),
                socket_row(44444, 9999, state="01"),  # established
            ),
            "tcp6": socket_table(
                socket_row(8080, 1002, ip="00000000000000000000000000000000"),
            ),
        },
        users={0: "root", 1000: "alice"},
    )
    fake.add_process(
        100,
        cmdline=b"/usr/sbin/nginx\0-g\0daemon off;\0",
        comm="nginx",
        uid=0,
        start_ticks=10_000,
        sockets=(1001, 1002),
    )
    fake.add_process(
        200,
        cmdline=b"node\0server.js\0",
        comm="node",
        uid=1000,
        start_ticks=50_000,
        sockets=(2001,),
    )
    fake.add_process(300, cmdline=b"/bin/bash\0", comm="bash", uid=1000)
    return fake


@pytest.fixture
def scanner(source: FakeProcSource) -> PortScanner:
    return PortScanner(source=source)
