# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# analytical.py
# -----------------------------------------------------------------------------
# Purpose:
#   Closed-form reference values for the station when arrivals are Poisson
#   and every packet has the same length (M/D/1, Pollaczek-Khinchine).
#
# Usage:
#   from pktsim.analytical import md1
#   ref = md1(lambda_=10.0, packet_size=1500, service_rate=1e6)
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Optional

@dataclass
class AnalyticalResult:
    arrival_rate: float       # lambda, packets/s
    service_time: float       # E[S], seconds per packet
    utilization: float        # rho
    Lq: float
    Wq: float
    W: float
    L: float
    note: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)

def md1(lambda_: float, packet_size: float, service_rate: float) -> AnalyticalResult:
    """
    M/D/1 via Pollaczek-Khinchine with Var(S) = 0:

      rho = lambda * S
      Wq  = lambda * S^2 / (2 * (1 - rho))
      W   = Wq + S,  Lq = lambda * Wq,  L = lambda * W
    """
    if lambda_ <= 0:
        raise ValueError("lambda must be > 0")
    if packet_size <= 0 or service_rate <= 0:
        raise ValueError("packet_size and service_rate must be > 0")

    ES = packet_size / service_rate
    rho = lambda_ * ES
    if rho >= 1.0:
        inf = float("inf")
        return AnalyticalResult(lambda_, ES, rho, inf, inf, inf, inf,
                                note="Unstable system (rho >= 1)")

    Wq = (lambda_ * ES * ES) / (2.0 * (1.0 - rho))
    W = Wq + ES
    return AnalyticalResult(
        arrival_rate=lambda_,
        service_time=ES,
        utilization=rho,
        Lq=lambda_ * Wq,
        Wq=Wq,
        W=W,
        L=lambda_ * W,
    )
