"""Tests for the launcher's port helpers."""

from __future__ import annotations

import socket

from start_app import pick_port, wait_for_server


def test_pick_port_skips_a_listening_port() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as srv:
        srv.bind(("127.0.0.1", 0))
        srv.listen()
        busy = srv.getsockname()[1]
        assert pick_port("127.0.0.1", busy) != busy
        assert wait_for_server("127.0.0.1", busy, timeout=1.0) is True


def test_out_of_range_preference_falls_back() -> None:
    port = pick_port("127.0.0.1", 70000)
    assert 1024 <= port <= 65535
