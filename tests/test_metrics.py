import math

import pytest

from pktsim.entities import Packet
from pktsim.metrics import ClientStatistics, Metrics, RunningStats
from pktsim.queues import Server


class _Client:
    def __init__(self, generated):
        self.statistics = ClientStatistics(packets_generated=generated)


def test_running_stats():
    rs = RunningStats()
    for x in [2, 4, 4, 4, 5, 5, 7, 9]:
        rs.add(x)
    assert rs.count == 8
    assert rs.mean() == pytest.approx(5.0)
    assert rs.stddev() == pytest.approx(math.sqrt(32 / 7))


def test_running_stats_empty_and_single():
    rs = RunningStats()
    assert rs.mean() == 0.0
    assert rs.stddev() == 0.0
    rs.add(3.0)
    assert rs.mean() == 3.0
    assert rs.stddev() == 0.0


def test_warmup_discards_early_samples():
    m = Metrics(resolution=10.0, warmup_ticks=5)
    for i in range(10):
        m.note_qlen(i, i)
    assert m.qlen.count == 5
    assert m.qlen.mean() == pytest.approx(7.0)
    m.note_departure(2, Packet(0, 1))
    assert m.sojourn.count == 0
    m.note_departure(8, Packet(3, 1))
    assert m.sojourn.mean() == pytest.approx(0.5)


def test_time_series_sampling():
    m = Metrics(resolution=100.0, series_every=10)
    for i in range(35):
        m.note_qlen(i, 1)
    assert [pt["time_seconds"] for pt in m.time_series] == [0.0, 0.1, 0.2, 0.3]


def test_summary_ratios_and_conservation():
    srv = Server(pspeed=1.0, resolution=4.0, buffer_limit=2)
    for i in range(4):
        srv.enqueue(Packet(i, 1))
    srv.process()  # first packet enters service
    summary = Metrics(4.0).summary(_Client(4), srv, ticks=8)
    assert summary["packets_dropped"] == 2
    assert summary["loss_probability"] == pytest.approx(0.5)
    assert summary["final_qlen"] == 1
    assert summary["in_service"] == 1
    assert summary["idle_proportion"] == 0.0
    assert summary["conserved"] is True


def test_summary_with_nothing_generated():
    srv = Server(pspeed=1.0, resolution=1.0)
    summary = Metrics(1.0).summary(_Client(0), srv, ticks=0)
    assert summary["loss_probability"] == 0.0
    assert summary["idle_proportion"] == 0.0
    assert summary["conserved"] is True
