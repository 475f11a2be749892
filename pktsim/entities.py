# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# entities.py
# -----------------------------------------------------------------------------
# Purpose:
#   Entity definitions for the packet station: Packet.
#   A packet carries the tick it was generated at and its length in bits.
#
# Design notes:
#   - Packets are immutable once created by the Client; the Server's queue
#     owns them until service completes.
#   - Times are stored in ticks; convert with the run's resolution.
#
# Usage:
#   from pktsim.entities import Packet
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class Packet:
    time_generated: int              # tick the packet was generated at
    length: int                      # bits to serve before completion

    def sojourn(self, now: int, resolution: float) -> float:
        """Seconds spent in the system if the packet leaves at tick `now`."""
        return (now - self.time_generated) / resolution
