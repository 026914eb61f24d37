from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Statistics:
    """
    Aggregate for one probe round. RTTs are in milliseconds.
    """
    sent: int
    received: int
    loss: float          # fraction of sent probes with no reply, 0.0 .. 1.0
    min_rtt: float = 0.0
    max_rtt: float = 0.0
    avg_rtt: float = 0.0
    stdev_rtt: float = 0.0
    rtts: List[float] = field(default_factory=list)

    @classmethod
    def from_samples(cls, sent: int, rtts: List[float]) -> "Statistics":
        """
        Fold the replies of a round into a Statistics value. A round with no
        replies has zero RTT fields and, if anything was sent, a loss of 1.0.
        """
        received = len(rtts)
        loss = 0.0 if sent == 0 else 1.0 - (received / sent)
        if not rtts:
            return cls(sent=sent, received=0, loss=loss)

        avg = sum(rtts) / received
        # population stddev, same as ping(8) mdev
        var = sum((r - avg) ** 2 for r in rtts) / received
        return cls(
            sent=sent,
            received=received,
            loss=max(0.0, min(1.0, loss)),
            min_rtt=min(rtts),
            max_rtt=max(rtts),
            avg_rtt=avg,
            stdev_rtt=math.sqrt(var),
            rtts=list(rtts),
        )


@dataclass
class RoundOutcome:
    """Result of one round: exactly one of stats / error is set."""
    address: str
    start: datetime
    stats: Optional[Statistics] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None
