from __future__ import annotations

from typing import List, Optional, Protocol

from loguru import logger

from .stats import RoundOutcome
from .util import iso_timestamp, round_ms


class Reporter(Protocol):
    def report(self, outcome: RoundOutcome) -> None: ...


class LogReporter:
    """
    Emit one structured record per outcome:
      - success: INFO "ping" with addr, start, sent, loss, min/max/avg/stdev_rtt (ms)
      - failure: ERROR "ping" with addr, start, error
    """

    def __init__(self, log=logger) -> None:
        self._log = log

    def report(self, outcome: RoundOutcome) -> None:
        start = iso_timestamp(outcome.start)
        if outcome.error is not None or outcome.stats is None:
            error = outcome.error if outcome.error is not None else "round produced no statistics"
            self._log.bind(
                addr=outcome.address,
                start=start,
                error=str(error),
            ).error("ping")
            return

        st = outcome.stats
        self._log.bind(
            addr=outcome.address,
            start=start,
            sent=st.sent,
            loss=st.loss,
            min_rtt=round_ms(st.min_rtt),
            max_rtt=round_ms(st.max_rtt),
            avg_rtt=round_ms(st.avg_rtt),
            stdev_rtt=round_ms(st.stdev_rtt),
        ).info("ping")


class ListReporter:
    """Keeps outcomes in memory, optionally forwarding each to another reporter."""

    def __init__(self, forward: Optional[Reporter] = None) -> None:
        self.outcomes: List[RoundOutcome] = []
        self._forward = forward

    def report(self, outcome: RoundOutcome) -> None:
        self.outcomes.append(outcome)
        if self._forward is not None:
            self._forward.report(outcome)
