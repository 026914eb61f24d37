from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Dict, List, Set

from icmplib import (
    AsyncSocket,
    ICMPError,
    ICMPLibError,
    ICMPRequest,
    ICMPv4Socket,
    ICMPv6Socket,
    TimeoutExceeded,
    async_resolve,
    is_hostname,
    is_ipv6_address,
)
from icmplib.utils import unique_identifier
from loguru import logger

from .config import ProbeConfig
from .stats import RoundOutcome, Statistics
from .util import now_utc


class ProbeError(Exception):
    """A round that could not be run at all (lookup, socket or send failure)."""


@dataclass
class _Tally:
    sent: int = 0
    rtts: List[float] = field(default_factory=list)
    requests: Dict[int, ICMPRequest] = field(default_factory=dict)   # sequence -> request
    answered: Set[int] = field(default_factory=set)


async def _resolve(address: str) -> str:
    if is_hostname(address):
        return (await async_resolve(address))[0]
    return address


async def _collect(sock: AsyncSocket, ident: int, config: ProbeConfig, tally: _Tally) -> None:
    """
    Match every incoming reply against the requests sent so far until each one
    is answered. Runs for the whole session; the caller's deadline stops it.
    """
    while len(tally.answered) < config.count:
        try:
            reply = await sock.receive(None, config.timeout)
        except TimeoutExceeded:
            continue

        request = tally.requests.get(reply.sequence)
        if request is None or reply.sequence in tally.answered:
            continue
        # datagram sockets get their id rewritten by the kernel
        if config.privileged and reply.id != ident:
            continue

        tally.answered.add(reply.sequence)
        try:
            reply.raise_for_status()
        except ICMPError:
            # unreachable, ttl exceeded: loss
            continue
        tally.rtts.append((reply.time - request.time) * 1000)


async def _exchange(sock: AsyncSocket, ip: str, config: ProbeConfig, tally: _Tally) -> None:
    """
    Send config.count echo requests on a fixed schedule, request k going out
    k * interval after the first, while _collect picks up replies.
    """
    ident = unique_identifier()
    loop = asyncio.get_running_loop()
    began = loop.time()
    receiver = asyncio.ensure_future(_collect(sock, ident, config, tally))

    try:
        for seq in range(config.count):
            delay = began + seq * config.interval - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

            request = ICMPRequest(destination=ip, id=ident, sequence=seq)
            tally.requests[seq] = request
            sock.send(request)
            tally.sent += 1

        await receiver
    finally:
        if not receiver.done():
            receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receiver


async def ping_round(address: str, config: ProbeConfig) -> RoundOutcome:
    """
    Run one bounded measurement session against address.

    Partial or total loss inside a session that started is a successful outcome;
    failing to resolve, open the socket or send is an error outcome.
    """
    start = now_utc()
    tally = _Tally()
    try:
        ip = await _resolve(address)
        sock_cls = ICMPv6Socket if is_ipv6_address(ip) else ICMPv4Socket
        with AsyncSocket(sock_cls(privileged=config.privileged)) as sock:
            try:
                await asyncio.wait_for(_exchange(sock, ip, config, tally), timeout=config.timeout)
            except asyncio.TimeoutError:
                logger.debug("round deadline reached for {} after {} sent", address, tally.sent)
    except (ICMPLibError, OSError) as exc:
        err = ProbeError(str(exc) or type(exc).__name__)
        err.__cause__ = exc
        return RoundOutcome(address=address, start=start, error=err)

    return RoundOutcome(
        address=address,
        start=start,
        stats=Statistics.from_samples(tally.sent, tally.rtts),
    )
