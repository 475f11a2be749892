from pktsim.arrivals import Client


class FixedGenerator:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def next_event(self, resolution):
        self.calls += 1
        return self.value


def test_client_emits_every_fifth_tick():
    client = Client(FixedGenerator(5), 1e6)
    emitted = [i for i in range(21) if client.tick()]
    assert emitted == [0, 5, 10, 15, 20]
    assert client.statistics.packets_generated == 5


def test_ticker_never_underflows():
    client = Client(FixedGenerator(5), 1e6)
    for _ in range(50):
        before = client.statistics.packets_generated
        fired = client.tick()
        assert client.ticker >= 0
        assert client.statistics.packets_generated == before + (1 if fired else 0)


def test_zero_sample_emits_on_every_call():
    client = Client(FixedGenerator(0), 1.0)
    assert all(client.tick() for _ in range(10))
    assert client.statistics.packets_generated == 10
    assert client.ticker == 0


def test_seeded_ticker_waits_for_first_sample():
    gen = FixedGenerator(5)
    client = Client(gen, 1e6, seed_ticker=True)
    assert client.ticker == 5
    assert gen.calls == 1
    emitted = [i for i in range(15) if client.tick()]
    assert emitted == [4, 9, 14]


def test_seeded_ticker_zero_emits_immediately():
    client = Client(FixedGenerator(0), 1e6, seed_ticker=True)
    assert client.tick() is True


def test_next_packet_stamps_time():
    client = Client(FixedGenerator(3), 1e6)
    pkt = client.next_packet(0, 1500)
    assert pkt is not None
    assert (pkt.time_generated, pkt.length) == (0, 1500)
    assert client.next_packet(1, 1500) is None
