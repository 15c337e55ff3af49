"""Diagnostics server endpoints."""

from __future__ import annotations

import httpx
import pytest

from fotomirror.diagnostics import format_threads, parse_address, start_diagnostics_server


@pytest.mark.parametrize(
    "addr,expected",
    [("localhost:6060", ("localhost", 6060)), (":6060", ("", 6060)), ("[::1]:8080", ("::1", 8080))],
)
def test_parse_address(addr, expected):
    assert parse_address(addr) == expected


@pytest.mark.parametrize("addr", ["localhost", "localhost:http", ""])
def test_parse_address_rejects_bad_input(addr):
    with pytest.raises(ValueError):
        parse_address(addr)


def test_format_threads_includes_main_thread():
    assert "MainThread" in format_threads()


def test_server_reports_session_counters(make_session):
    session = make_session()
    session.galleries.register_if_new("aaaaaaaa", object())
    server = start_diagnostics_server("127.0.0.1:0", session)
    try:
        host, port = server.server_address[:2]
        base = f"http://{host}:{port}"
        client = httpx.Client(trust_env=False)
        resp = client.get(f"{base}/debug/vars")
        assert resp.status_code == 200
        assert resp.json() == {"in_flight": 0, "galleries": 1, "pictures": 0, "errors": 0, "pages": 0}

        resp = client.get(f"{base}/debug/threads")
        assert resp.status_code == 200
        assert "diagnostics" in resp.text

        assert client.get(f"{base}/nope").status_code == 404
        client.close()
    finally:
        server.shutdown()
        server.server_close()
