"""
core/scanner_engine.py
Async TCP-connect scan scheduler with:
  • a fixed pool of max_concurrent workers per host (no task-per-port fan-out)
  • full join barrier, results re-sorted by port number
  • best-effort DNS that never fails a scan
  • sequential host loop for network scans
  • stealth mode: shuffled, serial, randomly delayed probes
  • per-probe fault isolation
  • TCP-connect ping and host discovery sweeps on the same worker pool
  • No imports of dashboard/reporting (clean layering)
"""

from __future__ import annotations

import asyncio
import random
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from core.aggregator import build_network_result
from core.dns import DNSResolver
from core.models import HostResult, NetworkResult, PingResult, PortResult
from core.os_detect import OSDetector
from core.probe import probe_port
from core.service_fingerprint import ServiceFingerprinter
from core.target_parser import parse_targets
from utils.config import ScanConfig
from utils.constants import DISCOVERY_PORTS, PortState, ScanType
from utils.errors import PortParseError, ResolutionFailure
from utils.logger import get_logger
from utils.validators import validate_port

log = get_logger("netprobe.scanner")

ProbeFn = Callable[[str, int, ScanConfig], Awaitable[PortResult]]


# ─── Core Engine ─────────────────────────────────────────────────────────────

class ScanEngine:
    """
    Bounded-concurrency connect scanner bound to one ScanConfig.

    Layering contract:
      Imports only: core/*, utils/*
      Does NOT import: dashboard, reporting
    """

    def __init__(
        self,
        config: ScanConfig,
        probe: Optional[ProbeFn] = None,
        resolver: Optional[DNSResolver] = None,
        progress_cb: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        if not isinstance(config, ScanConfig):
            raise TypeError(f"Expected ScanConfig, got {type(config).__name__}")
        self._config = config
        self._probe: ProbeFn = probe or probe_port
        self._resolver = resolver or DNSResolver(timeout=max(config.timeout, 1.0))
        self._cb = progress_cb or (lambda _: None)
        self._rng = rng or random.Random()
        self._os = OSDetector()
        self._services = ServiceFingerprinter()

    @property
    def config(self) -> ScanConfig:
        return self._config

    # ── Public scan API ───────────────────────────────────────────────────────

    async def scan_host(self, target: str, ports: Sequence[int]) -> HostResult:
        """Scan all ports on a single host. Returns HostResult."""
        return await self._scan(
            target, list(ports),
            concurrency=self._config.max_concurrent,
            delay=None,
            scan_type=ScanType.TCP_CONNECT,
        )

    async def stealth_scan(self, target: str, ports: Sequence[int]) -> HostResult:
        """Serial scan in random port order with a random pause between probes."""
        order = list(ports)
        self._rng.shuffle(order)
        return await self._scan(
            target, order,
            concurrency=1,
            delay=self._config.stealth_delay,
            scan_type=ScanType.STEALTH,
        )

    async def scan_network(self, target_spec: str, ports: Sequence[int]) -> NetworkResult:
        """
        Scan every target in target_spec, one host at a time.

        target_spec is parsed before anything is probed, so InvalidSpec
        reaches the caller with no traffic sent.
        """
        targets = parse_targets(target_spec)
        ports = list(ports)
        t0 = time.monotonic()
        self._cb(f"[*] {target_spec}: {len(targets)} hosts × {len(ports)} ports")

        results: List[HostResult] = []
        for target in targets:
            results.append(await self.scan_host(target, ports))

        network = build_network_result(
            target_spec, results,
            include_down_hosts=self._config.include_down_hosts,
            duration_s=time.monotonic() - t0,
        )
        self._cb(
            f"[✓] {target_spec} done: {network.alive_count}/{network.total_scanned} "
            f"hosts up in {network.duration_s:.2f}s"
        )
        return network

    # ── Reachability ──────────────────────────────────────────────────────────

    async def ping_host(
        self, target: str, count: int = 4, port: int = 80, interval: float = 1.0,
    ) -> PingResult:
        """
        TCP ping: `count` connects to target:port, `interval` seconds apart.

        An accepted or refused connect is a reply (a RST proves the host is
        up); a connect that hits the deadline is a lost packet.
        """
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        ok, msg = validate_port(port)
        if not ok:
            raise PortParseError(msg)

        address = await self._forward(target) or target
        quick = self._config.with_overrides(grab_banners=False)
        self._cb(f"[*] PING {target} ({address}) port {port}")

        rtts: List[float] = []
        for i in range(count):
            if i and interval > 0:
                await asyncio.sleep(interval)
            r = await self._guarded_probe(address, port, quick)
            if r.state == PortState.FILTERED:
                self._cb(f"[-] {address}:{port} timed out")
                continue
            rtts.append(r.response_ms)
            self._cb(f"[+] reply from {address}:{port} time={r.response_ms:.2f}ms")

        return PingResult(host=target, address=address, port=port,
                          sent=count, rtts=tuple(rtts))

    async def discover_hosts(
        self, target_spec: str, ports: Sequence[int] = DISCOVERY_PORTS,
    ) -> List[str]:
        """
        Connect sweep over target_spec. Returns the targets that accepted or
        refused a connect on any of `ports`, in target order.

        Up to max_concurrent hosts are checked at once; each host tries
        its ports one by one and stops at the first answer.
        """
        targets = parse_targets(target_spec)
        ports = list(ports)
        quick = self._config.with_overrides(grab_banners=False)
        t0 = time.monotonic()

        async def check(target: str) -> Tuple[str, bool]:
            address = await self._forward(target) or target
            for port in ports:
                r = await self._guarded_probe(address, port, quick)
                if r.state != PortState.FILTERED:
                    return target, True
            return target, False

        answered: Dict[str, bool] = dict(
            await self._drain(targets, self._config.max_concurrent, check)
        )
        alive = [t for t in targets if answered[t]]
        self._cb(
            f"[✓] discovery {target_spec}: {len(alive)}/{len(targets)} hosts up "
            f"in {time.monotonic() - t0:.2f}s"
        )
        return alive

    # ── Host-level scan ───────────────────────────────────────────────────────

    async def _scan(
        self,
        target: str,
        order: List[int],
        concurrency: int,
        delay: Optional[Tuple[float, float]],
        scan_type: ScanType,
    ) -> HostResult:
        t0 = time.monotonic()
        address, hostname = await self._resolve(target)
        self._cb(f"[+] {target} ({address}) scanning {len(order)} ports")

        results = await self._run_probes(address, order, concurrency, delay)
        ports = tuple(sorted(results, key=lambda r: r.port))

        guess = self._os.detect(p.port for p in ports if p.state == PortState.OPEN)
        elapsed = (time.monotonic() - t0) * 1000
        host = HostResult(
            host=target,
            address=address,
            hostname=hostname,
            ports=ports,
            os_guess=guess.os_family,
            os_confidence=guess.confidence,
            scan_ms=elapsed,
            timestamp=self._now(),
            scan_type=scan_type,
        )
        self._cb(
            f"[✓] {target} done: {len(host.open_ports)} open / {len(order)} scanned "
            f"in {elapsed/1000:.2f}s"
        )
        return host

    async def _run_probes(
        self,
        address: str,
        order: List[int],
        concurrency: int,
        delay: Optional[Tuple[float, float]],
    ) -> List[PortResult]:
        return await self._drain(
            order, concurrency,
            lambda port: self._guarded_probe(address, port),
            delay,
        )

    async def _drain(
        self,
        items: Sequence[Any],
        concurrency: int,
        job: Callable[[Any], Awaitable[Any]],
        delay: Optional[Tuple[float, float]] = None,
    ) -> List[Any]:
        """
        Drive job(item) through a pool of `concurrency` workers.

        Workers pull from one shared iterator, so dispatch follows `items`
        and a finished job immediately hands its slot to the next item.
        A worker holds at most one job at a time, which is the bound.
        Results come back in completion order.
        """
        pending: Iterator[Any] = iter(items)
        results: List[Any] = []
        dispatched = 0

        async def worker() -> None:
            nonlocal dispatched
            for item in pending:
                if delay is not None and dispatched:
                    await asyncio.sleep(self._rng.uniform(*delay))
                dispatched += 1
                results.append(await job(item))

        n_workers = min(concurrency, len(items))
        await asyncio.gather(*(worker() for _ in range(n_workers)))
        return results

    async def _guarded_probe(
        self, address: str, port: int, config: Optional[ScanConfig] = None,
    ) -> PortResult:
        """One probe; a failure only ever touches its own result slot."""
        try:
            result = await self._probe(address, port, config or self._config)
        except Exception as exc:
            log.warning(f"probe {address}:{port} raised {exc!r}; marking filtered")
            return PortResult(
                port=port,
                state=PortState.FILTERED,
                service=self._services.lookup_port(port),
            )
        log.debug(f"{address}:{port} {result.state.name.lower()} "
                  f"({result.response_ms:.1f}ms) {result.service}")
        return result

    # ── DNS ───────────────────────────────────────────────────────────────────

    async def _forward(self, target: str) -> Optional[str]:
        """Forward lookup; None when the name does not resolve."""
        try:
            return await self._resolver.resolve(target)
        except ResolutionFailure as exc:
            log.warning(f"{exc}; probing {target!r} as given")
            return None

    async def _resolve(self, target: str) -> Tuple[str, str]:
        """(address, hostname). Never raises."""
        address = await self._forward(target)
        if address is None:
            return target, ""
        hostname = await self._resolver.reverse(address)
        if not hostname and target != address:
            hostname = target
        return address, hostname

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()


# ── Module-level entry points (explicit config, no shared default) ───────────

async def scan_host(
    address: str, ports: Sequence[int], config: ScanConfig, **engine_kw
) -> HostResult:
    return await ScanEngine(config, **engine_kw).scan_host(address, ports)


async def scan_network(
    target_spec: str, ports: Sequence[int], config: ScanConfig, **engine_kw
) -> NetworkResult:
    return await ScanEngine(config, **engine_kw).scan_network(target_spec, ports)


async def stealth_scan(
    target: str, ports: Sequence[int], config: ScanConfig, **engine_kw
) -> HostResult:
    return await ScanEngine(config, **engine_kw).stealth_scan(target, ports)


async def ping_host(
    target: str, config: ScanConfig, count: int = 4, port: int = 80,
    interval: float = 1.0, **engine_kw
) -> PingResult:
    return await ScanEngine(config, **engine_kw).ping_host(target, count, port, interval)


async def discover_hosts(
    target_spec: str, config: ScanConfig, ports: Sequence[int] = DISCOVERY_PORTS, **engine_kw
) -> List[str]:
    return await ScanEngine(config, **engine_kw).discover_hosts(target_spec, ports)
