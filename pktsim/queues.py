# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# queues.py
# -----------------------------------------------------------------------------
# Purpose:
#   The packet station: a FIFO queue with an optional buffer limit K and a
#   single server that drains the head packet at a fixed bit rate, one tick
#   at a time.
#
# Design notes:
#   - Service is tracked in bits: each tick adds pspeed / resolution bits to
#     the packet in service.
#   - Completion uses int(bits_processed) == length, not >=. With more than
#     one bit per tick a packet whose length is skipped over never completes;
#     SimulationConfig.validate() rejects such pairings up front.
#   - bits_processed is a float running total, so fractional steps can finish
#     a tick late: 100 steps of 0.1 sum to just under 10 and a 10-bit packet
#     completes on the 101st call.
#   - Drops at a full buffer are counted, never raised.
#
# Usage:
#   from pktsim.queues import Server
#   srv = Server(pspeed=1e6, resolution=1e6, buffer_limit=50)
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from collections import deque
from typing import Deque, Optional
from .entities import Packet
from .metrics import ServerStatistics

logger = logging.getLogger(__name__)

class Server:
    """Single FIFO server with buffer limit K.

    Parameters
    ----------
    pspeed : float
        Service rate in bits per second.
    resolution : float
        Ticks per second.
    buffer_limit : int, optional
        Maximum number of waiting packets (the one in service not included).
        None means unbounded.

    Notes
    -----
    - States: idle (curr_packet is None) and serving. A completion returns to
      idle; the next queued packet starts on the following process() call.
    - statistics is only updated by enqueue() and process().
    """
    def __init__(self, pspeed: float, resolution: float, buffer_limit: Optional[int] = None):
        if pspeed <= 0:
            raise ValueError("pspeed must be > 0")
        if resolution <= 0:
            raise ValueError("resolution must be > 0")
        if buffer_limit is not None and buffer_limit < 0:
            raise ValueError("buffer_limit must be >= 0 or None")
        self.pspeed = float(pspeed)
        self.resolution = float(resolution)
        self.buffer_limit = buffer_limit
        self.queue: Deque[Packet] = deque()
        self.curr_packet: Optional[Packet] = None
        self.bits_processed: float = 0.0
        self.statistics = ServerStatistics()

    @property
    def busy(self) -> bool:
        return self.curr_packet is not None

    # Capacity check for loss
    def can_join(self) -> bool:
        return self.buffer_limit is None or len(self.queue) < self.buffer_limit

    def enqueue(self, packet: Packet) -> None:
        if not self.can_join():
            self.statistics.packets_dropped += 1
            logger.debug("buffer full (%d), dropped packet from tick %d",
                         len(self.queue), packet.time_generated)
            return
        self.queue.append(packet)

    def process(self) -> Optional[Packet]:
        """Advance service by one tick and return the packet that completed, if any."""
        if self.curr_packet is None:
            if not self.queue:
                self.statistics.idle_count += 1
                return None
            self.curr_packet = self.queue.popleft()
        return self._advance()

    def _advance(self) -> Optional[Packet]:
        packet = self.curr_packet
        self.bits_processed += self.pspeed / self.resolution
        if int(self.bits_processed) != packet.length:
            return None
        self.curr_packet = None
        self.bits_processed = 0.0
        self.statistics.packets_processed += 1
        return packet

    def qlen(self) -> int:
        return len(self.queue)

    def in_system(self) -> int:
        return len(self.queue) + (1 if self.busy else 0)
