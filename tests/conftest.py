import asyncio
import threading

import pytest

from mock_tool.mock_engine import MockEngine
from mock_tool.mock_server import MockServer
from mock_tool.request_log import RequestLog
from mock_tool.rules import normalize_rule


def run_server_thread(server):
    loop = asyncio.new_event_loop()

    def run():
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(server.start())
        except asyncio.CancelledError:
            pass

    t = threading.Thread(target=run, daemon=True)
    t.start()
    return loop, t


@pytest.fixture
def mock_server():
    """Start a MockServer on a free port; returns (server, logged records)"""
    running = []

    def start(rules=()):
        records = []
        engine = MockEngine(
            [normalize_rule(r) for r in rules],
            request_log=RequestLog(sink=records.append),
        )
        server = MockServer(host='127.0.0.1', port=0, engine=engine)
        server.listening = threading.Event()
        loop, t = run_server_thread(server)
        assert server.listening.wait(5), "server did not start"
        running.append((server, loop, t))
        return server, records

    yield start

    for server, loop, t in running:
        loop.call_soon_threadsafe(server.stop)
        t.join(5)

