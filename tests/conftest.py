"""
Shared fixtures: a loguru capture sink and a fake icmplib socket layer so
rounds can run without the network or raw-socket privileges.
"""
import asyncio

import pytest
from icmplib import TimeoutExceeded
from loguru import logger

from dingpy import pinger


@pytest.fixture
def records():
    """Collect loguru records emitted during the test."""
    out = []
    handler_id = logger.add(lambda m: out.append(m.record), level="DEBUG", format="{message}")
    yield out
    logger.remove(handler_id)


class FakeRequest:
    def __init__(self, destination, id, sequence, **kwargs):
        self.destination = destination
        self.id = id
        self.sequence = sequence
        self.time = 0.0


class FakeReply:
    def __init__(self, id, sequence, time):
        self.id = id
        self.sequence = sequence
        self.time = time

    def raise_for_status(self):
        return None


class FakeNet:
    """
    Scripted replies per destination: rtts[dest][seq] is an RTT in ms, or None
    for a probe that never gets an answer.
    """

    def __init__(self, rtts=None, send_error=None, open_error=None):
        self.rtts = rtts or {}
        self.send_error = send_error
        self.open_error = open_error
        self.opened = []   # (family, privileged)
        self.sent = []     # (destination, sequence)

    def socket_factory(self, family):
        def _make(privileged=True):
            if self.open_error is not None:
                raise self.open_error
            self.opened.append((family, privileged))
            return object()
        return _make

    def async_socket(self, inner):
        return FakeAsyncSocket(self)


class FakeAsyncSocket:
    """
    Delivers each scripted reply after its RTT has really elapsed, so replies
    can overtake later send slots exactly as on the wire.
    """

    def __init__(self, net):
        self.net = net
        self.replies = None

    def __enter__(self):
        self.replies = asyncio.Queue()
        return self

    def __exit__(self, *exc):
        return False

    def send(self, request):
        if self.net.send_error is not None:
            raise self.net.send_error
        loop = asyncio.get_running_loop()
        request.time = loop.time()
        self.net.sent.append((request.destination, request.sequence))

        script = self.net.rtts.get(request.destination, [])
        rtt = script[request.sequence] if request.sequence < len(script) else None
        if rtt is not None:
            reply = FakeReply(request.id, request.sequence, request.time + rtt / 1000.0)
            loop.call_later(rtt / 1000.0, self.replies.put_nowait, reply)

    async def receive(self, request=None, timeout=2):
        try:
            return await asyncio.wait_for(self.replies.get(), timeout)
        except asyncio.TimeoutError:
            raise TimeoutExceeded(timeout)


@pytest.fixture
def fake_net(monkeypatch):
    net = FakeNet()
    monkeypatch.setattr(pinger, "ICMPRequest", FakeRequest)
    monkeypatch.setattr(pinger, "AsyncSocket", net.async_socket)
    monkeypatch.setattr(pinger, "ICMPv4Socket", net.socket_factory("v4"))
    monkeypatch.setattr(pinger, "ICMPv6Socket", net.socket_factory("v6"))
    return net
