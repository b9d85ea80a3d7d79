"""
core/models.py
Immutable scan result types.

Each PortResult is created once per (host, port) probe, each HostResult once
all probes for that host have joined, each NetworkResult once the host loop
is done. Nothing is mutated after construction; sequences are tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from utils.constants import PortState, Protocol, ScanType


@dataclass(frozen=True)
class PortResult:
    port:          int
    state:         PortState
    service:       str = "unknown"
    version:       str = ""
    banner:        str = ""
    response_ms:   float = 0.0
    protocol:      Protocol = Protocol.TCP

    @property
    def is_open(self) -> bool:
        return self.state == PortState.OPEN


@dataclass(frozen=True)
class HostResult:
    host:          str                  # target as given
    address:       str                  # resolved address (or host on failure)
    hostname:      str = ""             # reverse lookup, best-effort
    ports:         Tuple[PortResult, ...] = ()
    os_guess:      str = "Unknown"
    os_confidence: float = 0.0          # heuristic, never ground truth
    scan_ms:       float = 0.0
    timestamp:     str = ""
    scan_type:     ScanType = ScanType.TCP_CONNECT

    @property
    def open_ports(self) -> List[PortResult]:
        return [p for p in self.ports if p.is_open]

    @property
    def is_alive(self) -> bool:
        """Host responded to something: at least one non-closed port."""
        return any(p.state != PortState.CLOSED for p in self.ports)

    def count(self, state: PortState) -> int:
        return sum(1 for p in self.ports if p.state == state)


@dataclass(frozen=True)
class NetworkResult:
    target_spec:   str
    hosts:         Tuple[HostResult, ...] = ()
    alive_count:   int = 0
    total_scanned: int = 0
    duration_s:    float = 0.0


@dataclass(frozen=True)
class ScanSummary:
    hosts_total:       int = 0
    hosts_up:          int = 0
    total_open:        int = 0
    avg_open_per_host: float = 0.0
    top_services:      List[Tuple[str, int]] = field(default_factory=list)


@dataclass(frozen=True)
class PortDominance:
    """How many hosts expose a given open port."""
    port:       int
    service:    str
    count:      int
    percentage: float
    versions:   Tuple[str, ...] = ()


@dataclass(frozen=True)
class PingResult:
    """Repeated TCP connects to one port; a refusal counts as a reply."""
    host:    str
    address: str
    port:    int = 80
    sent:    int = 0
    rtts:    Tuple[float, ...] = ()   # ms, one per reply

    @property
    def received(self) -> int:
        return len(self.rtts)

    @property
    def loss_pct(self) -> float:
        if not self.sent:
            return 0.0
        return round((self.sent - self.received) / self.sent * 100, 1)

    @property
    def min_ms(self) -> float:
        return min(self.rtts) if self.rtts else 0.0

    @property
    def avg_ms(self) -> float:
        return sum(self.rtts) / len(self.rtts) if self.rtts else 0.0

    @property
    def max_ms(self) -> float:
        return max(self.rtts) if self.rtts else 0.0
