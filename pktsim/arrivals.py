# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# arrivals.py
# -----------------------------------------------------------------------------
# Purpose:
#   Exogenous packet arrivals. The Client advances one tick per call and
#   emits a packet whenever its ticker runs out, then re-seeds the ticker
#   from its generator.
#
# Design notes:
#   - At most one packet per tick. If the interarrival time is shorter than a
#     tick the extra arrivals are lost; pick a finer resolution instead.
#   - A generator sample of 0 or 1 both mean "emit again on the next call".
#
# Usage:
#   client = Client(Markov(10.0, rng), resolution=1e6)
#   if client.tick(): server.enqueue(Packet(i, 1500))
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Optional
from .entities import Packet
from .generators import Generator
from .metrics import ClientStatistics

class Client:
    """Packet source driven by a Generator.

    Attributes
    ----------
    ticker : int
        Ticks left until the next emission. Never negative.
    resolution : float
        Ticks per second handed to the generator.
    statistics : ClientStatistics
        packets_generated, updated only by tick().

    Notes
    -----
    By default the ticker starts at 0 so the first packet leaves on the very
    first tick. With seed_ticker=True the ticker is seeded from one generator
    sample at construction instead.
    """
    def __init__(self, generator: Generator, resolution: float, seed_ticker: bool = False):
        if resolution <= 0:
            raise ValueError("resolution must be > 0")
        self.generator = generator
        self.resolution = float(resolution)
        self.statistics = ClientStatistics()
        self.ticker: int = self._sample() if seed_ticker else 0

    def _sample(self) -> int:
        return max(0, int(self.generator.next_event(self.resolution)))

    def _emit(self) -> bool:
        self.statistics.packets_generated += 1
        self.ticker = self._sample()
        return True

    def tick(self) -> bool:
        """Advance one tick; return True if a packet was generated."""
        if self.ticker == 0:
            return self._emit()
        self.ticker -= 1
        if self.ticker == 0:
            return self._emit()
        return False

    def next_packet(self, now: int, length: int) -> Optional[Packet]:
        """tick() and wrap a generated packet stamped with `now`."""
        if self.tick():
            return Packet(time_generated=now, length=length)
        return None
