"""
pktsim package initializer.

This package contains the tick-driven simulation engine for a single packet
station: event generators, the arrival client, the FIFO server with its
bounded buffer, metric collection, and an M/D/1 analytical reference.
"""
__all__ = [
    "entities", "generators", "arrivals", "queues",
    "metrics", "analytical", "simulation",
]
