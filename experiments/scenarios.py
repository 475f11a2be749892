"""
experiments/scenarios.py

Holds scenario definitions (overrides on top of experiments/baseline.yaml) to
sweep during experiments. Add load levels, buffer sizes and arrival
processes here.
"""

from __future__ import annotations

BASELINE = {
    "name": "baseline",
    "overrides": {},  # override config keys here per scenario
}

# Same offered load, finite buffer: measures loss probability.
BOUNDED_BUFFER = {
    "name": "bounded_buffer",
    "overrides": {
        "server": {"buffer_limit": 5},
    },
}

# Constant interarrival gap (D/D/1): no queueing at rho < 1.
DETERMINISTIC = {
    "name": "deterministic",
    "overrides": {
        "arrivals": {"kind": "deterministic"},
    },
}

# rho = 0.95 with an unbounded buffer.
HIGH_LOAD = {
    "name": "high_load",
    "overrides": {
        "arrivals": {"rate": 95.0},
    },
}

# rho > 1: the queue only stays finite because of the buffer.
OVERLOAD = {
    "name": "overload",
    "overrides": {
        "arrivals": {"rate": 120.0},
        "server": {"buffer_limit": 20},
    },
}

SCENARIOS = [BASELINE, BOUNDED_BUFFER, DETERMINISTIC, HIGH_LOAD, OVERLOAD]
