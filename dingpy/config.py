from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, Set


class ConfigurationError(ValueError):
    """Raised for malformed addresses or probe settings."""


class AddressSet:
    """
    Mutable set of probe targets shared with the scheduler.

    The scheduler never iterates the live set; it takes a snapshot at the start
    of every generation, so members may be added or dropped at any time.
    """

    def __init__(self, values: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._members: Set[str] = set()
        for v in values:
            self.add(v)

    def add(self, value: str) -> None:
        """Add one address or a comma separated list of them. All or nothing."""
        parts = value.split(",")
        if any(p == "" for p in parts):
            raise ConfigurationError("empty string target")
        with self._lock:
            self._members.update(parts)

    def discard(self, value: str) -> None:
        with self._lock:
            self._members.discard(value)

    def snapshot(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._members)

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    def __contains__(self, value: object) -> bool:
        with self._lock:
            return value in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __str__(self) -> str:
        return ",".join(sorted(self.snapshot()))

    def __repr__(self) -> str:
        return f"AddressSet({str(self)!r})"


@dataclass(frozen=True)
class ProbeConfig:
    count: int = 5            # echo requests per round
    interval: float = 10.0    # seconds between requests
    timeout: float = 60.0     # seconds, deadline for the whole round
    privileged: bool = True   # raw socket (needs cap_net_raw) vs. datagram socket

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ConfigurationError(f"packet count must be positive: {self.count}")
        if self.interval <= 0:
            raise ConfigurationError(f"interval must be positive: {self.interval}")
        if self.timeout <= 0:
            raise ConfigurationError(f"batch duration must be positive: {self.timeout}")
