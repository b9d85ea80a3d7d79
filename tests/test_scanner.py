"""
tests/test_scanner.py
Unit tests for the probe executor and the scan scheduler.
Network tests only touch 127.0.0.1 listeners and the RFC 5737
TEST-NET-1 block (never answers).
Run: pytest tests/test_scanner.py -v
"""

import sys
import os
import asyncio
import random
import socket
import time
from contextlib import asynccontextmanager
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

import core.probe
from core.models import PingResult, PortResult
from core.probe import payload_for_port, probe_port
from core.scanner_engine import (
    ScanEngine, discover_hosts, ping_host, scan_host, scan_network, stealth_scan,
)
from utils.config import ScanConfig
from utils.constants import PortState, ScanType
from utils.errors import InvalidSpec, ResolutionFailure

BLACKHOLE = "192.0.2.1"


# ─── Helpers ──────────────────────────────────────────────────────────────────

class StaticResolver:
    """Resolver stand-in: passthrough, fixed PTR name, or failure."""

    def __init__(self, hostname: str = "", fail: bool = False):
        self.hostname = hostname
        self.fail = fail

    async def resolve(self, target: str) -> str:
        if self.fail:
            raise ResolutionFailure(target, "test")
        return target

    async def reverse(self, address: str) -> str:
        return self.hostname


class InstrumentedProbe:
    """Fake probe recording dispatch order and peak in-flight count."""

    def __init__(self, states=None, delay=None, fail_on=()):
        self.states = states or {}
        self.delay = delay or (lambda port: 0.001)
        self.fail_on = set(fail_on)
        self.calls = []
        self.completed = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, address, port, config):
        self.calls.append((address, port))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay(port))
            if port in self.fail_on:
                raise RuntimeError("probe blew up")
        finally:
            self.in_flight -= 1
        self.completed.append(port)
        state = self.states.get((address, port), self.states.get(port, PortState.CLOSED))
        return PortResult(port=port, state=state, service="svc")


class RecordingRandom(random.Random):
    """Random whose uniform() returns the lower bound and records calls."""

    def __init__(self, seed=0):
        super().__init__(seed)
        self.uniform_calls = []

    def uniform(self, a, b):
        self.uniform_calls.append((a, b))
        return a


@asynccontextmanager
async def tcp_listener(greeting=b"", http_reply=b"", hang_up: bool = False):
    """
    Local TCP server. Yields (port, requests_seen).

    greeting/http_reply may be a list of chunks, written 50ms apart.
    hang_up closes the connection right after the greeting.
    """
    seen = []

    async def send(writer, data):
        chunks = data if isinstance(data, list) else [data]
        for i, chunk in enumerate(chunks):
            if i:
                await asyncio.sleep(0.05)
            writer.write(chunk)
            await writer.drain()

    async def handle(reader, writer):
        try:
            if greeting:
                await send(writer, greeting)
            if http_reply:
                seen.append(await reader.read(1024))
                await send(writer, http_reply)
            if not hang_up:
                await reader.read(1024)
        except ConnectionError:
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port, seen
    finally:
        server.close()
        await server.wait_closed()


def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


def engine(probe=None, **cfg) -> ScanEngine:
    return ScanEngine(ScanConfig(**cfg), probe=probe, resolver=StaticResolver())


# ─── Probe Executor ───────────────────────────────────────────────────────────

class TestProbe:

    def test_http_payload(self):
        assert payload_for_port(80, "10.0.0.1") == b"HEAD / HTTP/1.0\r\nHost: 10.0.0.1\r\n\r\n"

    def test_banner_first_ports_get_no_payload(self):
        for port in (21, 22, 25, 110, 143, 3306):
            assert payload_for_port(port, "10.0.0.1") == b""

    @pytest.mark.asyncio
    async def test_open_with_ssh_banner(self):
        async with tcp_listener(greeting=b"SSH-2.0-OpenSSH_8.9p1 Ubuntu-3\r\n") as (port, _):
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=0.5))
        assert r.state == PortState.OPEN
        assert r.banner == "SSH-2.0-OpenSSH_8.9p1 Ubuntu-3"
        assert r.service == "ssh"
        assert r.version == "8.9p1"
        assert r.response_ms >= 0

    @pytest.mark.asyncio
    async def test_http_probe_sent(self, monkeypatch):
        reply = b"HTTP/1.0 200 OK\r\nServer: nginx/1.25.3\r\n\r\n"
        async with tcp_listener(http_reply=reply) as (port, seen):
            monkeypatch.setattr(core.probe, "HTTP_PORTS", frozenset({port}))
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=0.5))
        assert seen and seen[0].startswith(b"HEAD / HTTP/1.0\r\n")
        assert b"Host: 127.0.0.1" in seen[0]
        assert r.service == "http"
        assert r.version == "1.25.3"

    @pytest.mark.asyncio
    async def test_banner_capped_at_512(self):
        async with tcp_listener(greeting=b"A" * 2000) as (port, _):
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=0.5))
        assert r.state == PortState.OPEN
        assert 0 < len(r.banner.encode()) <= 512

    @pytest.mark.asyncio
    async def test_trailing_whitespace_trimmed(self):
        async with tcp_listener(greeting=b"220 ready\r\n\r\n   ") as (port, _):
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=0.5))
        assert r.banner == "220 ready"

    @pytest.mark.asyncio
    async def test_banner_spanning_two_writes(self, monkeypatch):
        reply = [b"HTTP/1.1 200 OK\r\n", b"Server: nginx/1.25.3\r\n\r\n"]
        async with tcp_listener(http_reply=reply) as (port, _):
            monkeypatch.setattr(core.probe, "HTTP_PORTS", frozenset({port}))
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=1.0))
        assert "nginx" in r.banner
        assert r.banner.startswith("HTTP/1.1 200 OK")
        assert r.version == "1.25.3"

    @pytest.mark.asyncio
    async def test_eof_ends_banner_read_early(self):
        async with tcp_listener(greeting=b"+OK bye\r\n", hang_up=True) as (port, _):
            t0 = time.monotonic()
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=5.0))
            elapsed = time.monotonic() - t0
        assert r.banner == "+OK bye"
        assert elapsed < 2.0

    @pytest.mark.asyncio
    async def test_binary_banner_stays_within_512_bytes(self):
        async with tcp_listener(greeting=b"\xff" * 512) as (port, _):
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=0.5))
        assert r.banner
        assert len(r.banner.encode("utf-8")) <= 512

    def test_decode_keeps_valid_text(self):
        assert core.probe._decode_banner(b"SSH-2.0-x\r\n") == "SSH-2.0-x"

    @pytest.mark.asyncio
    async def test_silent_service_open_empty_banner(self):
        async with tcp_listener() as (port, _):
            r = await probe_port("127.0.0.1", port, ScanConfig(timeout=0.3))
        assert r.state == PortState.OPEN
        assert r.banner == ""

    @pytest.mark.asyncio
    async def test_no_banner_grab(self):
        async with tcp_listener(greeting=b"SSH-2.0-x\r\n") as (port, _):
            r = await probe_port("127.0.0.1", port, ScanConfig(grab_banners=False))
        assert r.state == PortState.OPEN
        assert r.banner == ""

    @pytest.mark.asyncio
    async def test_refused_is_closed(self):
        r = await probe_port("127.0.0.1", closed_port(), ScanConfig(timeout=0.5))
        assert r.state == PortState.CLOSED
        assert r.banner == ""
        assert r.response_ms >= 0

    @pytest.mark.asyncio
    async def test_blackhole_is_filtered(self):
        r = await probe_port(BLACKHOLE, 9999, ScanConfig(timeout=0.3))
        assert r.state == PortState.FILTERED
        assert r.banner == ""
        assert r.response_ms >= 0

    @pytest.mark.asyncio
    async def test_unresolvable_is_filtered(self):
        r = await probe_port("no-such-host.invalid", 80, ScanConfig(timeout=0.5))
        assert r.state == PortState.FILTERED


# ─── Scheduler ────────────────────────────────────────────────────────────────

class TestScheduler:

    def test_requires_scan_config(self):
        with pytest.raises(TypeError):
            ScanEngine({"timeout": 1})

    @pytest.mark.asyncio
    async def test_sorted_despite_reverse_completion(self):
        ports = list(range(1, 21))
        probe = InstrumentedProbe(delay=lambda p: (21 - p) * 0.003)
        result = await engine(probe, max_concurrent=20).scan_host("10.0.0.1", ports)
        assert probe.completed != sorted(probe.completed)
        assert [p.port for p in result.ports] == ports

    @pytest.mark.asyncio
    async def test_sorted_when_dispatched_unsorted(self):
        ports = [443, 22, 8080, 80, 21]
        result = await engine(InstrumentedProbe()).scan_host("10.0.0.1", ports)
        assert [p.port for p in result.ports] == sorted(ports)

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        rng = random.Random(7)
        delays = {p: rng.uniform(0.0, 0.004) for p in range(1, 301)}
        probe = InstrumentedProbe(delay=delays.__getitem__)
        result = await engine(probe, max_concurrent=7).scan_host("10.0.0.1", range(1, 301))
        assert probe.max_in_flight <= 7
        assert probe.max_in_flight == 7
        assert len(result.ports) == 300

    @pytest.mark.asyncio
    async def test_bound_larger_than_port_count(self):
        probe = InstrumentedProbe()
        result = await engine(probe, max_concurrent=500).scan_host("10.0.0.1", [1, 2, 3])
        assert probe.max_in_flight <= 3
        assert len(result.ports) == 3

    @pytest.mark.asyncio
    async def test_dispatch_follows_port_order(self):
        ports = [9, 3, 7, 1]
        probe = InstrumentedProbe()
        await engine(probe, max_concurrent=1).scan_host("10.0.0.1", ports)
        assert [p for _, p in probe.calls] == ports

    @pytest.mark.asyncio
    async def test_empty_port_list(self):
        result = await engine(InstrumentedProbe()).scan_host("10.0.0.1", [])
        assert result.ports == ()
        assert result.is_alive is False

    @pytest.mark.asyncio
    async def test_probe_failure_isolated(self):
        probe = InstrumentedProbe(states={22: PortState.OPEN}, fail_on={23})
        result = await engine(probe).scan_host("10.0.0.1", [22, 23, 24])
        states = {p.port: p.state for p in result.ports}
        assert states == {22: PortState.OPEN, 23: PortState.FILTERED, 24: PortState.CLOSED}
        assert result.ports[1].service == "telnet"

    @pytest.mark.asyncio
    async def test_os_guess_from_open_ports(self):
        probe = InstrumentedProbe(states={135: PortState.OPEN, 445: PortState.OPEN,
                                          22: PortState.FILTERED, 111: PortState.FILTERED})
        result = await engine(probe).scan_host("10.0.0.1", [22, 111, 135, 445])
        assert result.os_guess == "Windows"
        assert result.os_confidence == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_result_metadata(self):
        result = await engine(InstrumentedProbe()).scan_host("10.0.0.1", [80])
        assert result.host == "10.0.0.1"
        assert result.address == "10.0.0.1"
        assert result.scan_type == ScanType.TCP_CONNECT
        assert result.scan_ms >= 0
        assert result.timestamp

    @pytest.mark.asyncio
    async def test_resolution_failure_degrades(self):
        probe = InstrumentedProbe()
        eng = ScanEngine(ScanConfig(), probe=probe, resolver=StaticResolver(fail=True))
        result = await eng.scan_host("printer.lan", [80])
        assert result.address == "printer.lan"
        assert result.hostname == ""
        assert probe.calls == [("printer.lan", 80)]

    @pytest.mark.asyncio
    async def test_reverse_hostname(self):
        eng = ScanEngine(ScanConfig(), probe=InstrumentedProbe(),
                         resolver=StaticResolver(hostname="gw.lan"))
        result = await eng.scan_host("10.0.0.1", [80])
        assert result.hostname == "gw.lan"

    @pytest.mark.asyncio
    async def test_progress_callback(self):
        messages = []
        eng = ScanEngine(ScanConfig(), probe=InstrumentedProbe(),
                         resolver=StaticResolver(), progress_cb=messages.append)
        await eng.scan_host("10.0.0.1", [80])
        assert any("10.0.0.1" in m for m in messages)

    @pytest.mark.asyncio
    async def test_module_level_scan_host(self):
        probe = InstrumentedProbe(states={80: PortState.OPEN})
        result = await scan_host("10.0.0.1", [80, 81], ScanConfig(max_concurrent=2),
                                 probe=probe, resolver=StaticResolver())
        assert [p.state for p in result.ports] == [PortState.OPEN, PortState.CLOSED]


# ─── Network scans ────────────────────────────────────────────────────────────

class TestScanNetwork:

    @pytest.mark.asyncio
    async def test_down_hosts_dropped(self):
        probe = InstrumentedProbe(states={("10.0.0.2", 80): PortState.OPEN})
        net = await scan_network("10.0.0.1-3", [80, 443], ScanConfig(),
                                 probe=probe, resolver=StaticResolver())
        assert [h.address for h in net.hosts] == ["10.0.0.2"]
        assert net.alive_count == 1
        assert net.total_scanned == 3
        assert net.target_spec == "10.0.0.1-3"
        assert net.duration_s >= 0

    @pytest.mark.asyncio
    async def test_filtered_counts_as_responding(self):
        probe = InstrumentedProbe(states={("10.0.0.1", 80): PortState.FILTERED})
        net = await scan_network("10.0.0.1,10.0.0.2", [80], ScanConfig(),
                                 probe=probe, resolver=StaticResolver())
        assert [h.address for h in net.hosts] == ["10.0.0.1"]

    @pytest.mark.asyncio
    async def test_include_down_hosts(self):
        net = await scan_network("10.0.0.1-3", [80], ScanConfig(include_down_hosts=True),
                                 probe=InstrumentedProbe(), resolver=StaticResolver())
        assert [h.address for h in net.hosts] == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]
        assert net.alive_count == 0

    @pytest.mark.asyncio
    async def test_hosts_scanned_sequentially(self):
        probe = InstrumentedProbe()
        await scan_network("10.0.0.1-4", [1, 2], ScanConfig(max_concurrent=2),
                           probe=probe, resolver=StaticResolver())
        addresses = [a for a, _ in probe.calls]
        assert addresses == sorted(addresses)
        assert probe.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_invalid_spec_before_probing(self):
        probe = InstrumentedProbe()
        with pytest.raises(InvalidSpec):
            await scan_network("10.0.0.1,bad host!", [80], ScanConfig(),
                               probe=probe, resolver=StaticResolver())
        assert probe.calls == []


# ─── Stealth ──────────────────────────────────────────────────────────────────

class TestStealth:

    @pytest.mark.asyncio
    async def test_serial_shuffled_delayed(self):
        ports = list(range(1, 31))
        probe = InstrumentedProbe()
        rng = RecordingRandom(seed=3)
        cfg = ScanConfig(stealth_delay=(0.001, 0.002), max_concurrent=50)
        result = await stealth_scan("10.0.0.1", ports, cfg, probe=probe,
                                    resolver=StaticResolver(), rng=rng)
        dispatched = [p for _, p in probe.calls]
        assert probe.max_in_flight == 1
        assert sorted(dispatched) == ports
        assert dispatched != ports
        assert rng.uniform_calls == [(0.001, 0.002)] * (len(ports) - 1)
        assert [p.port for p in result.ports] == ports
        assert result.scan_type == ScanType.STEALTH

    @pytest.mark.asyncio
    async def test_same_seed_same_order(self):
        cfg = ScanConfig(stealth_delay=(0.0, 0.0))
        orders = []
        for _ in range(2):
            probe = InstrumentedProbe()
            await stealth_scan("10.0.0.1", range(1, 16), cfg, probe=probe,
                               resolver=StaticResolver(), rng=random.Random(42))
            orders.append([p for _, p in probe.calls])
        assert orders[0] == orders[1]


# ─── Ping / discovery ─────────────────────────────────────────────────────────

class TestReachability:

    def test_ping_stats(self):
        ping = PingResult("h", "10.0.0.1", sent=4, rtts=(1.0, 2.0, 6.0))
        assert ping.received == 3
        assert ping.loss_pct == 25.0
        assert (ping.min_ms, ping.avg_ms, ping.max_ms) == (1.0, 3.0, 6.0)

    def test_ping_stats_no_replies(self):
        ping = PingResult("h", "10.0.0.1", sent=2)
        assert ping.loss_pct == 100.0
        assert ping.avg_ms == 0.0

    @pytest.mark.asyncio
    async def test_ping_counts_replies(self):
        fake = InstrumentedProbe(states={80: PortState.OPEN})
        ping = await ping_host("10.0.0.1", ScanConfig(), count=3, interval=0,
                               probe=fake, resolver=StaticResolver())
        assert fake.calls == [("10.0.0.1", 80)] * 3
        assert ping.sent == 3
        assert ping.received == 3

    @pytest.mark.asyncio
    async def test_ping_refusal_is_a_reply_timeout_is_not(self):
        fake = InstrumentedProbe(states={("10.0.0.1", 80): PortState.CLOSED,
                                          ("10.0.0.2", 80): PortState.FILTERED})
        eng = engine(fake)
        up = await eng.ping_host("10.0.0.1", count=2, interval=0)
        down = await eng.ping_host("10.0.0.2", count=2, interval=0)
        assert up.received == 2
        assert down.received == 0
        assert down.loss_pct == 100.0

    @pytest.mark.asyncio
    async def test_ping_skips_banner_grab(self):
        seen = []

        async def recording(address, port, config):
            seen.append(config.grab_banners)
            return PortResult(port, PortState.OPEN)

        await engine(recording).ping_host("10.0.0.1", count=1)
        assert seen == [False]

    @pytest.mark.asyncio
    async def test_ping_rejects_bad_arguments(self):
        eng = engine(InstrumentedProbe())
        with pytest.raises(ValueError):
            await eng.ping_host("10.0.0.1", count=0)
        with pytest.raises(InvalidSpec):
            await eng.ping_host("10.0.0.1", port=70000)

    @pytest.mark.asyncio
    async def test_ping_real_listener(self):
        async with tcp_listener() as (port, _):
            ping = await ping_host("127.0.0.1", ScanConfig(timeout=0.5), count=2,
                                   port=port, interval=0.01)
        assert ping.received == 2
        assert ping.min_ms >= 0

    @pytest.mark.asyncio
    async def test_discover_returns_answering_hosts_in_order(self):
        fake = InstrumentedProbe(
            states={("10.0.0.1", 22): PortState.CLOSED,
                    ("10.0.0.3", 443): PortState.OPEN},
            delay=lambda port: 0.0,
        )
        for addr in ("10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"):
            for port in (80, 443, 22):
                fake.states.setdefault((addr, port), PortState.FILTERED)
        alive = await discover_hosts("10.0.0.1-4", ScanConfig(), ports=(80, 443, 22),
                                     probe=fake, resolver=StaticResolver())
        assert alive == ["10.0.0.1", "10.0.0.3"]

    @pytest.mark.asyncio
    async def test_discover_stops_at_first_answer(self):
        fake = InstrumentedProbe(states={80: PortState.OPEN})
        await engine(fake).discover_hosts("10.0.0.1", ports=(80, 443, 22))
        assert fake.calls == [("10.0.0.1", 80)]

    @pytest.mark.asyncio
    async def test_discover_bounded_by_max_concurrent(self):
        fake = InstrumentedProbe(states={80: PortState.OPEN}, delay=lambda port: 0.002)
        alive = await engine(fake, max_concurrent=5).discover_hosts("10.0.0.0/24", ports=(80,))
        assert len(alive) == 254
        assert fake.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_discover_invalid_spec(self):
        fake = InstrumentedProbe()
        with pytest.raises(InvalidSpec):
            await engine(fake).discover_hosts("10.0.0.1,???")
        assert fake.calls == []


# ─── End-to-end against local listeners ───────────────────────────────────────

class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_open_closed_filtered(self):
        async def routed_probe(address, port, config):
            # 9999 goes to a blackhole so one host shows all three states
            if port == 9999:
                return await probe_port(BLACKHOLE, port, config)
            return await probe_port(address, port, config)

        shut = closed_port()
        async with tcp_listener(greeting=b"SSH-2.0-OpenSSH_9.6\r\n") as (open_port, _):
            eng = ScanEngine(ScanConfig(timeout=0.5), probe=routed_probe,
                             resolver=StaticResolver())
            result = await eng.scan_host("127.0.0.1", [open_port, shut, 9999])

        by_state = {p.state: p for p in result.ports}
        assert len(result.ports) == 3
        assert set(by_state) == {PortState.OPEN, PortState.CLOSED, PortState.FILTERED}
        assert by_state[PortState.OPEN].port == open_port
        assert by_state[PortState.CLOSED].port == shut
        assert by_state[PortState.FILTERED].port == 9999
        assert all(p.response_ms >= 0 for p in result.ports)
        assert [p.port for p in result.ports] == sorted([open_port, shut, 9999])

    @pytest.mark.asyncio
    async def test_real_resolver_localhost(self):
        async with tcp_listener(greeting=b"+OK hi\r\n") as (port, _):
            result = await scan_host("127.0.0.1", [port], ScanConfig(timeout=1.0))
        assert result.address == "127.0.0.1"
        assert result.open_ports[0].service == "pop3"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short", "-x"])
