# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# metrics.py
# -----------------------------------------------------------------------------
# Purpose:
#   Counters and KPIs: per-component statistics records, the running
#   mean/stddev accumulator, and the per-run Metrics collector.
#
# Design notes:
#   - ClientStatistics / ServerStatistics are only ever mutated by their
#     owning component (Client.tick, Server.enqueue, Server.process).
#   - Keep side-effect methods (note_*) for instrumentation from the driver.
#   - Summaries return JSON-serializable dicts for easy tabulation.
#
# Usage:
#   M = Metrics(resolution, warmup_ticks); ...; M.summary(client, server, ticks)
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import math

@dataclass
class ClientStatistics:
    packets_generated: int = 0

@dataclass
class ServerStatistics:
    packets_processed: int = 0
    packets_dropped: int = 0
    idle_count: int = 0

class RunningStats:
    """Online mean and sample standard deviation (Welford's update)."""
    def __init__(self):
        self.count = 0
        self._mean = 0.0
        self._m2 = 0.0

    def add(self, sample: float):
        self.count += 1
        delta = sample - self._mean
        self._mean += delta / self.count
        self._m2 += delta * (sample - self._mean)

    def mean(self) -> float:
        return self._mean

    def stddev(self) -> float:
        if self.count < 2:
            return 0.0
        return math.sqrt(self._m2 / (self.count - 1))

class Metrics:
    """Sample collector fed by the driver loop.

    Parameters
    ----------
    resolution : float
        Ticks per second, used to convert tick stamps to seconds.
    warmup_ticks : int
        Samples taken before this tick are discarded. Component counters are
        never reset, so the conservation law holds over the whole run.
    series_every : int, optional
        When set, record the queue length every `series_every` ticks.
    """
    def __init__(self, resolution: float, warmup_ticks: int = 0, series_every: Optional[int] = None):
        self.resolution = resolution
        self.warmup_ticks = warmup_ticks
        self.series_every = series_every
        self.sojourn = RunningStats()
        self.qlen = RunningStats()
        self.time_series: List[Dict[str, float]] = []

    def _active(self, tick: int) -> bool:
        """Return True if tick is beyond the warm-up period."""
        return tick >= self.warmup_ticks

    def note_qlen(self, tick: int, qlen: int):
        if self.series_every and tick % self.series_every == 0:
            self.time_series.append({"time_seconds": tick / self.resolution, "qlen": qlen})
        if not self._active(tick):
            return
        self.qlen.add(qlen)

    def note_departure(self, tick: int, packet):
        if not self._active(tick):
            return
        self.sojourn.add(packet.sojourn(tick, self.resolution))

    def summary(self, client, server, ticks: int) -> Dict[str, Any]:
        cstats = client.statistics
        sstats = server.statistics
        generated = cstats.packets_generated
        final_qlen = server.qlen()
        in_service = 1 if server.busy else 0
        return {
            "ticks": ticks,
            "duration_seconds": ticks / self.resolution,
            "sojourn_mean": self.sojourn.mean(),
            "sojourn_stddev": self.sojourn.stddev(),
            "sojourn_samples": self.sojourn.count,
            "qlen_mean": self.qlen.mean(),
            "qlen_stddev": self.qlen.stddev(),
            "packets_generated": generated,
            "packets_processed": sstats.packets_processed,
            "packets_dropped": sstats.packets_dropped,
            "loss_probability": (sstats.packets_dropped / generated) if generated else 0.0,
            "idle_count": sstats.idle_count,
            "idle_proportion": (sstats.idle_count / ticks) if ticks else 0.0,
            "final_qlen": final_qlen,
            "in_service": in_service,
            "conserved": generated == (
                sstats.packets_processed + sstats.packets_dropped + final_qlen + in_service
            ),
            "time_series": list(self.time_series),
        }
