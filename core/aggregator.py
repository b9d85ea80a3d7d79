"""
core/aggregator.py
Read-only folds over finished HostResults: network result assembly,
summary statistics and port dominance. No network I/O.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from core.models import HostResult, NetworkResult, PortDominance, ScanSummary


def build_network_result(
    target_spec: str,
    hosts: Sequence[HostResult],
    include_down_hosts: bool = False,
    duration_s: float = 0.0,
) -> NetworkResult:
    """
    Keep hosts that responded to something (≥1 open or filtered port),
    or every host when include_down_hosts is set. Input order is kept.
    """
    alive = [h for h in hosts if h.is_alive]
    kept = list(hosts) if include_down_hosts else alive
    return NetworkResult(
        target_spec=target_spec,
        hosts=tuple(kept),
        alive_count=len(alive),
        total_scanned=len(hosts),
        duration_s=duration_s,
    )


def service_histogram(hosts: Iterable[HostResult], top_k: int = 10) -> List[Tuple[str, int]]:
    """
    (service, count) over open ports, highest count first.
    Ties keep the order in which the service was first seen.
    """
    counts: Dict[str, int] = {}
    for host in hosts:
        for p in host.open_ports:
            counts[p.service] = counts.get(p.service, 0) + 1
    # sorted() is stable, dict preserves first-seen order
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return ranked[:top_k] if top_k > 0 else ranked


def summarize(hosts: Sequence[HostResult], top_k: int = 10) -> ScanSummary:
    """Totals for one or many hosts."""
    hosts = list(hosts)
    total_open = sum(len(h.open_ports) for h in hosts)
    return ScanSummary(
        hosts_total=len(hosts),
        hosts_up=sum(1 for h in hosts if h.is_alive),
        total_open=total_open,
        avg_open_per_host=round(total_open / max(1, len(hosts)), 2),
        top_services=service_histogram(hosts, top_k),
    )


def port_dominance(hosts: Sequence[HostResult], top_k: int = 20) -> List[PortDominance]:
    """
    Open ports ranked by how many hosts expose them.

    Percentages are relative to hosts that are up.
    """
    up = [h for h in hosts if h.is_alive]
    if not up:
        return []

    port_count: Dict[int, int] = {}
    port_service: Dict[int, str] = {}
    port_versions: Dict[int, Dict[str, None]] = {}

    for host in up:
        for p in host.open_ports:
            port_count[p.port] = port_count.get(p.port, 0) + 1
            port_service.setdefault(p.port, p.service)
            if p.version:
                port_versions.setdefault(p.port, {}).setdefault(p.version, None)

    ranked = sorted(port_count.items(), key=lambda kv: (-kv[1], kv[0]))
    return [
        PortDominance(
            port=port,
            service=port_service[port],
            count=count,
            percentage=round(count / len(up) * 100, 1),
            versions=tuple(list(port_versions.get(port, {}))[:5]),
        )
        for port, count in ranked[:top_k]
    ]
