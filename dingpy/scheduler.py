from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from .config import AddressSet, ProbeConfig
from .pinger import ping_round
from .report import Reporter
from .stats import RoundOutcome
from .util import now_utc

Prober = Callable[[str, ProbeConfig], Awaitable[RoundOutcome]]
GenerationHook = Callable[[int, List[RoundOutcome]], None]


async def _probe_and_report(
    address: str,
    config: ProbeConfig,
    reporter: Reporter,
    prober: Prober,
) -> RoundOutcome:
    start = now_utc()
    try:
        outcome = await prober(address, config)
    except Exception as exc:
        # a round never takes the generation down with it
        logger.opt(exception=exc).debug("prober raised for {}", address)
        outcome = RoundOutcome(address=address, start=start, error=exc)
    try:
        reporter.report(outcome)
    except Exception as exc:
        logger.opt(exception=exc).error("reporter failed for {}", address)
    return outcome


async def run_generation(
    addresses: AddressSet,
    config: ProbeConfig,
    reporter: Reporter,
    prober: Prober = ping_round,
) -> List[RoundOutcome]:
    """
    Probe every address of the current snapshot concurrently, one task each,
    and return once all of them have reported.
    """
    targets = list(addresses.snapshot())
    tasks = [
        asyncio.ensure_future(_probe_and_report(addr, config, reporter, prober))
        for addr in targets
    ]
    if not tasks:
        return []
    results = await asyncio.gather(*tasks, return_exceptions=True)
    outcomes = []
    for addr, res in zip(targets, results):
        if isinstance(res, BaseException):
            logger.opt(exception=res).error("round task for {} died", addr)
            continue
        outcomes.append(res)
    return outcomes


async def run_forever(
    addresses: AddressSet,
    config: ProbeConfig,
    reporter: Reporter,
    prober: Prober = ping_round,
    *,
    stop: Optional[asyncio.Event] = None,
    on_generation: Optional[GenerationHook] = None,
) -> int:
    """
    Run generation after generation with no pause in between.

    stop is only looked at between generations; without it this never returns.
    Returns the number of completed generations.
    """
    done = 0
    while stop is None or not stop.is_set():
        if len(addresses) == 0:
            # deliberate pause, see "Empty address set" in DESIGN.md: an empty
            # generation would otherwise never yield to the event loop
            await asyncio.sleep(config.interval)
            continue

        outcomes = await run_generation(addresses, config, reporter, prober)
        done += 1
        if on_generation is not None:
            on_generation(done, outcomes)
    return done
