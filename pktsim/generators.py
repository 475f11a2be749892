# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# generators.py
# -----------------------------------------------------------------------------
# Purpose:
#   Event generators: how many ticks until the next event of a process.
#   Markov draws exponential interarrivals, Deterministic returns a fixed gap.
#
# Design notes:
#   - Rates are in events per second; `resolution` is ticks per second, so
#     1e6 models microsecond ticks.
#   - The RNG is passed in explicitly so a run is reproducible from its seed.
#   - A coarse resolution can make next_event() return 0. That means the next
#     event falls inside the current tick; it is not an error.
#
# Usage:
#   gen = Markov(100.0, rng=random.Random(7)); gen.next_event(1e6)
# -----------------------------------------------------------------------------

from __future__ import annotations
import math, random
from typing import Optional, Protocol

class Generator(Protocol):
    """Anything that can say how many ticks remain until its next event."""
    def next_event(self, resolution: float) -> int: ...

def _check_rate(name: str, rate: float) -> float:
    rate = float(rate)
    if not math.isfinite(rate) or rate <= 0:
        raise ValueError(f"{name} must be a finite number > 0, got {rate!r}")
    return rate

class Markov:
    """Exponentially distributed interarrival times with rate `lam` (events/s).

    Parameters
    ----------
    lam : float
        Mean number of events per second. Must be > 0.
    rng : random.Random, optional
        Source of randomness. A fresh, unseeded instance is created when
        omitted; pass a seeded one for reproducible runs.
    """
    def __init__(self, lam: float, rng: Optional[random.Random] = None):
        self.lam = _check_rate("lambda", lam)
        self.rng = rng if rng is not None else random.Random()

    def next_event(self, resolution: float) -> int:
        return int(self.rng.expovariate(self.lam) * resolution)

    def __repr__(self):
        return f"Markov(lam={self.lam})"

class Deterministic:
    """Fixed interarrival gap of exactly 1/rate seconds."""
    def __init__(self, rate: float):
        self.rate = _check_rate("rate", rate)

    def next_event(self, resolution: float) -> int:
        return int(resolution / self.rate)

    def __repr__(self):
        return f"Deterministic(rate={self.rate})"

GENERATORS = ("markov", "deterministic")

def make_generator(kind: str, rate: float, rng: Optional[random.Random] = None) -> Generator:
    """
    Build a generator from its config name.

    Parameters
    ----------
    kind : str
        'markov' or 'deterministic' (case insensitive).
    rate : float
        Events per second.
    rng : random.Random, optional
        Only used by the Markov variant.
    """
    k = (kind or "").strip().lower()
    if k == "markov":
        return Markov(rate, rng=rng)
    if k == "deterministic":
        return Deterministic(rate)
    raise ValueError(f"Unknown generator kind: {kind!r} (expected one of {GENERATORS})")
