# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# simulation.py
# -----------------------------------------------------------------------------
# Purpose:
#   Simulate a single replication: build the generator, client and server,
#   step them tick by tick for the configured duration, and return metrics.
#
# Design notes:
#   - Within a tick the queue length is sampled first, then arrivals, then
#     service, so a packet generated at tick i can be served at tick i.
#   - Time advances by fixed ticks; there is no event list.
#   - Replications and confidence intervals live outside, in experiments/.
#
# Usage:
#   from pktsim.simulation import SimulationConfig, run_one
#   results = run_one(cfg)           # cfg is the parsed YAML dict
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging, math, random
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Optional
from .entities import Packet
from .generators import GENERATORS, make_generator
from .arrivals import Client
from .queues import Server
from .metrics import Metrics

logger = logging.getLogger(__name__)

@dataclass
class SimulationConfig:
    """Plain values for one run. Rates are per second, sizes in bits.

    A buffer_limit of None (or 0 in the YAML/CLI layer) means unbounded.
    """
    arrival_rate: float = 80.0
    packet_size: int = 100
    service_rate: float = 10000.0
    duration: float = 30.0
    buffer_limit: Optional[int] = None
    resolution: float = 1e4
    arrivals: str = "markov"
    seed: int = 0
    warmup: float = 0.0
    series_interval: Optional[float] = None

    @classmethod
    def from_dict(cls, cfg: Dict) -> "SimulationConfig":
        """Build from the nested config layout used by config/baseline.yaml."""
        sim = cfg.get("sim", {}) or {}
        arr = cfg.get("arrivals", {}) or {}
        pkt = cfg.get("packets", {}) or {}
        srv = cfg.get("server", {}) or {}
        d = cls()
        buffer_limit = srv.get("buffer_limit", d.buffer_limit)
        # 0 keeps its historical meaning of "no limit"
        if not buffer_limit:
            buffer_limit = None
        series = sim.get("series_interval", d.series_interval)
        return cls(
            arrival_rate=float(arr.get("rate", d.arrival_rate)),
            packet_size=int(pkt.get("size", d.packet_size)),
            service_rate=float(srv.get("service_rate", d.service_rate)),
            duration=float(sim.get("duration", d.duration)),
            buffer_limit=int(buffer_limit) if buffer_limit is not None else None,
            resolution=float(sim.get("resolution", d.resolution)),
            arrivals=str(arr.get("kind", d.arrivals)),
            seed=int(sim.get("seed", d.seed)),
            warmup=float(sim.get("warmup", d.warmup)),
            series_interval=float(series) if series else None,
        )

    @property
    def total_ticks(self) -> int:
        return int(self.duration * self.resolution)

    @property
    def bits_per_tick(self) -> float:
        return self.service_rate / self.resolution

    def validate(self) -> "SimulationConfig":
        """Raise ValueError for values the engine cannot run with."""
        for name in ("arrival_rate", "service_rate", "duration", "resolution"):
            val = getattr(self, name)
            if not math.isfinite(val) or val <= 0:
                raise ValueError(f"{name} must be a finite number > 0, got {val!r}")
        if self.packet_size <= 0:
            raise ValueError("packet_size must be > 0")
        if self.buffer_limit is not None and self.buffer_limit < 0:
            raise ValueError("buffer_limit must be >= 0")
        if self.warmup < 0 or self.warmup >= self.duration:
            raise ValueError("warmup must be >= 0 and shorter than duration")
        if self.arrivals.strip().lower() not in GENERATORS:
            raise ValueError(f"arrivals must be one of {GENERATORS}")
        if self.series_interval is not None and self.series_interval <= 0:
            raise ValueError("series_interval must be > 0")
        step = self.bits_per_tick
        # int(bits) == length only triggers if the running total lands on the
        # length; steps of at most one bit pass through every integer.
        if step > 1 and not (step.is_integer() and self.packet_size % int(step) == 0):
            raise ValueError(
                f"service_rate/resolution = {step:g} bits per tick never lands exactly on "
                f"packet_size={self.packet_size}; use a finer resolution or a length that is "
                f"a multiple of the per-tick increment"
            )
        return self

    def to_dict(self) -> Dict:
        return asdict(self)

def run_simulation(config: SimulationConfig, stop: Optional[Callable[[int], bool]] = None) -> Dict:
    """
    Run one replication and return its summary.

    Parameters
    ----------
    config : SimulationConfig
        Validated before the run starts.
    stop : callable, optional
        Called with the tick index once per tick, before any work for that
        tick; returning True ends the run early.
    """
    config.validate()
    rng = random.Random(config.seed)
    generator = make_generator(config.arrivals, config.arrival_rate, rng=rng)
    client = Client(generator, config.resolution)
    server = Server(config.service_rate, config.resolution, buffer_limit=config.buffer_limit)

    resolution = config.resolution
    series_every = max(1, int(config.series_interval * resolution)) if config.series_interval else None
    M = Metrics(resolution, warmup_ticks=int(config.warmup * resolution), series_every=series_every)

    total = config.total_ticks
    logger.info("run start: %s, %d ticks, seed %d", generator, total, config.seed)
    ticks_run = total
    for i in range(total):
        if stop is not None and stop(i):
            logger.info("run stopped early at tick %d", i)
            ticks_run = i
            break
        M.note_qlen(i, server.qlen())
        if client.tick():
            server.enqueue(Packet(time_generated=i, length=config.packet_size))
        done = server.process()
        if done is not None:
            M.note_departure(i, done)

    results = M.summary(client, server, ticks_run)
    results["seed"] = config.seed
    logger.info("run done: generated=%d processed=%d dropped=%d leftover=%d",
                results["packets_generated"], results["packets_processed"],
                results["packets_dropped"], results["final_qlen"])
    if not results["conserved"]:
        logger.warning("packet conservation violated: %s", results)
    return results

def run_one(cfg: Dict) -> Dict:
    """Run one replication straight from a parsed config dict."""
    return run_simulation(SimulationConfig.from_dict(cfg))

def run_replications(config: SimulationConfig, replications: int) -> List[Dict]:
    """Independent replications; replication k uses seed config.seed + k."""
    results = []
    for rep in range(max(1, int(replications))):
        cfg = SimulationConfig(**{**config.to_dict(), "seed": config.seed + rep})
        results.append(run_simulation(cfg))
    return results
