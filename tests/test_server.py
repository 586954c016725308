"""Tests for the GELF UDP server."""

import json
import socket
import threading
import time

import pytest

from gelf_input.config import Config
from gelf_input.dispatcher import DatagramDispatcher
from gelf_input.server import GelfUDPServer


class ListSink:
    def __init__(self):
        self.events = []

    def emit(self, tag, time, record):
        self.events.append((tag, time, record))


def _make_server(**overrides):
    """Start a server on an OS-assigned port; returns (server, thread, sink)."""
    defaults = {"bind": "127.0.0.1", "port": 0, "tag": "gelf"}
    defaults.update(overrides)
    config = Config(**defaults)
    sink = ListSink()
    server = GelfUDPServer(config, DatagramDispatcher(config, sink), threading.Event())

    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()

    for _ in range(50):
        if server.server_address is not None:
            break
        time.sleep(0.05)
    else:
        raise RuntimeError("Server failed to bind")

    return server, thread, sink


def _send(address, payload):
    if isinstance(payload, dict):
        payload = json.dumps(payload).encode("utf-8")
    family = socket.AF_INET6 if ":" in address[0] else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_DGRAM)
    try:
        sock.sendto(payload, address[:2])
    finally:
        sock.close()


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class TestServerReceive:
    def test_emits_events_for_each_timestamp_shape(self):
        server, thread, sink = _make_server()
        tests = [
            {"short_message": "short message", "full_message": "no time"},
            {"short_message": "short message", "full_message": "int time", "timestamp": 12345678},
            {"short_message": "short message", "full_message": "float time", "timestamp": 12345678.1},
            {"short_message": "short message", "full_message": "gelf time", "timestamp": 12345678.1234},
            {"short_message": "short message", "full_message": "high resolution time",
             "timestamp": 12345678.1234567},
            {"short_message": "short message", "full_message": "future time", "timestamp": 123456789.1234},
            {"short_message": "short message", "full_message": "past time", "timestamp": -123456789.1234},
        ]
        try:
            before = time.time()
            for test in tests:
                _send(server.server_address, test)
            assert _wait_for(lambda: len(sink.events) == len(tests)), "missing emitted events"
        finally:
            server.stop()
            thread.join(timeout=5)

        by_full = {record["full_message"]: (tag, t) for tag, t, record in sink.events}
        for test in tests:
            tag, t = by_full[test["full_message"]]
            assert tag == "gelf"
            if "timestamp" in test:
                assert t == float(test["timestamp"])
            else:
                assert t >= before

    def test_strip_leading_underscore(self):
        server, thread, sink = _make_server()
        try:
            _send(server.server_address, {
                "timestamp": 12345,
                "short_message": "short message",
                "full_message": "full message",
                "_custom_field": 12345,
            })
            assert _wait_for(lambda: len(sink.events) == 1)
        finally:
            server.stop()
            thread.join(timeout=5)

        tag, t, record = sink.events[0]
        assert tag == "gelf"
        assert t == 12345.0
        assert record == {
            "short_message": "short message",
            "full_message": "full message",
            "custom_field": 12345,
        }

    def test_invalid_datagram_does_not_stop_server(self):
        server, thread, sink = _make_server()
        try:
            _send(server.server_address, b"not json")
            _send(server.server_address, {"short_message": "still alive"})
            assert _wait_for(lambda: len(sink.events) == 1)
            assert sink.events[0][2]["short_message"] == "still alive"
            assert server._dispatcher.metrics.snapshot()["total_dropped"] == 1
        finally:
            server.stop()
            thread.join(timeout=5)

    def test_untrusted_client_timestamp(self):
        server, thread, sink = _make_server(trust_client_timestamp=False)
        try:
            _send(server.server_address, {"short_message": "m", "timestamp": 12345.5})
            assert _wait_for(lambda: len(sink.events) == 1)
        finally:
            server.stop()
            thread.join(timeout=5)

        assert sink.events[0][1] != 12345.5
        assert sink.events[0][1] > 1600000000

    def test_shutdown_stops_server(self):
        server, thread, _ = _make_server()
        server.stop()
        thread.join(timeout=5)
        assert not thread.is_alive()


def _ipv6_available() -> bool:
    if not socket.has_ipv6:
        return False
    try:
        with socket.socket(socket.AF_INET6, socket.SOCK_DGRAM) as sock:
            sock.bind(("::1", 0))
    except OSError:
        return False
    return True


@pytest.mark.skipif(not _ipv6_available(), reason="IPv6 loopback not available")
class TestServerIPv6:
    def test_binds_ipv6_loopback(self):
        server, thread, sink = _make_server(bind="::1")
        try:
            assert server.server_address[0] == "::1"
            _send(server.server_address, {"short_message": "v6"})
            assert _wait_for(lambda: len(sink.events) == 1)
        finally:
            server.stop()
            thread.join(timeout=5)


class StaleOnceEvent(threading.Event):
    """Reports not-set on the first check after being set, like a check that lost a race."""

    def __init__(self):
        super().__init__()
        self._stale = True

    def is_set(self):
        if super().is_set() and self._stale:
            self._stale = False
            return False
        return super().is_set()


class StoppingSink:
    def __init__(self):
        self.server = None

    def emit(self, tag, time, record):
        self.server.stop()


class TestServerStopRace:
    def test_stop_between_check_and_receive(self):
        config = Config(bind="127.0.0.1", port=0)
        sink = StoppingSink()
        server = GelfUDPServer(config, DatagramDispatcher(config, sink), StaleOnceEvent())
        sink.server = server

        errors = []

        def run():
            try:
                server.start()
            except Exception as exc:
                errors.append(exc)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        assert _wait_for(lambda: server.server_address is not None)

        _send(server.server_address, {"short_message": "stop now"})
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert errors == []
