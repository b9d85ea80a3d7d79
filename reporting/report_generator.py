"""
reporting/report_generator.py
Render scan results as text, JSON or CSV, and write them to disk.

Layering: reads core result types only. Does NOT import dashboard.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from core.aggregator import port_dominance, summarize
from core.models import HostResult, NetworkResult, PingResult, PortResult
from core.os_detect import OSDetector, OSGuess
from utils.constants import PortState
from utils.logger import get_logger
from utils.validators import sanitize_banner

log = get_logger("netprobe.reporting")

CSV_HEADER = ["ip", "port", "protocol", "state", "service", "version", "response_time_ms"]

Result = Union[HostResult, NetworkResult]


# ─── Dict / JSON ─────────────────────────────────────────────────────────────

def host_to_dict(host: HostResult) -> dict:
    """
    Export shape: {ip, hostname, os, os_confidence, scan_time, ports:[...]}.
    Only open ports are listed; the CSV export carries every state.
    """
    return {
        "ip":            host.address,
        "hostname":      host.hostname,
        "os":            host.os_guess,
        "os_confidence": host.os_confidence,
        "scan_time":     round(host.scan_ms / 1000.0, 3),
        "timestamp":     host.timestamp,
        "ports": [
            {"port": p.port, "service": p.service, "state": p.state.name.lower()}
            for p in host.open_ports
        ],
    }


def network_to_dict(network: NetworkResult) -> dict:
    s = summarize(network.hosts)
    return {
        "target":        network.target_spec,
        "alive_count":   network.alive_count,
        "total_scanned": network.total_scanned,
        "duration":      round(network.duration_s, 3),
        "summary": {
            "total_open":        s.total_open,
            "avg_open_per_host": s.avg_open_per_host,
            "top_services":      [{"service": n, "count": c} for n, c in s.top_services],
            "port_dominance": [
                {"port": d.port, "service": d.service, "count": d.count,
                 "percentage": d.percentage}
                for d in port_dominance(network.hosts)
            ],
        },
        "hosts": [host_to_dict(h) for h in network.hosts],
    }


def to_dict(result: Result) -> dict:
    if isinstance(result, NetworkResult):
        return network_to_dict(result)
    return host_to_dict(result)


def to_json(result: Result, indent: int = 2) -> str:
    return json.dumps(to_dict(result), indent=indent, default=str)


# ─── CSV ─────────────────────────────────────────────────────────────────────

def _hosts_of(result: Union[Result, Iterable[HostResult]]) -> List[HostResult]:
    if isinstance(result, NetworkResult):
        return list(result.hosts)
    if isinstance(result, HostResult):
        return [result]
    return list(result)


def to_csv(result: Union[Result, Iterable[HostResult]]) -> str:
    """One row per probed port, every state included."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for host in _hosts_of(result):
        for p in host.ports:
            writer.writerow([
                host.address, p.port, p.protocol.value, p.state.name.lower(),
                p.service, p.version, f"{p.response_ms:.2f}",
            ])
    return buf.getvalue()


# ─── Text ────────────────────────────────────────────────────────────────────

_STATE_MARK = {PortState.OPEN: "+", PortState.FILTERED: "?", PortState.CLOSED: "-"}


def format_port(p: PortResult) -> str:
    ver = f" [{p.version}]" if p.version else ""
    return (f"  {_STATE_MARK[p.state]} {p.port:>5}/{p.protocol.value:<3} "
            f"{p.state.name.lower():<9} {p.service:<16}{ver}  {p.response_ms:.1f}ms")


def render_text(host: HostResult, show_all: bool = False) -> str:
    os_text = OSDetector.format_guess(OSGuess(host.os_guess, host.os_confidence))
    lines = [
        f"\n═══ {host.address} ({host.hostname or '-'}) ═══",
        f"OS: {os_text}",
        f"Scan time: {host.scan_ms / 1000:.2f}s  "
        f"open {host.count(PortState.OPEN)} / closed {host.count(PortState.CLOSED)} "
        f"/ filtered {host.count(PortState.FILTERED)}",
        "",
        f"  {'':1} {'PORT':>9} {'STATE':<9} {'SERVICE':<16}",
        "  " + "─" * 55,
    ]
    shown = host.ports if show_all else host.open_ports
    for p in shown:
        lines.append(format_port(p))
        if p.banner:
            lines.append(f"        └ {sanitize_banner(p.banner)}")
    if not shown:
        lines.append("  No open ports detected")
    return "\n".join(lines)


def render_network_text(network: NetworkResult, top_k: int = 10) -> str:
    s = summarize(network.hosts, top_k=top_k)
    lines = [f"\n{'═'*60}",
             f"  SCAN {network.target_spec} COMPLETE",
             f"{'─'*60}",
             f"  Hosts up     : {network.alive_count}/{network.total_scanned}",
             f"  Open ports   : {s.total_open}",
             f"  Avg per host : {s.avg_open_per_host}",
             f"  Duration     : {network.duration_s:.2f}s",
             f"{'═'*60}"]
    if s.top_services:
        lines.append("  Top services:")
        for name, count in s.top_services:
            lines.append(f"    {name:<20} {count:>4}")
    dominance = port_dominance(network.hosts, top_k=top_k)
    if dominance:
        lines.append("  Port dominance:")
        for d in dominance:
            ver = f"  [{', '.join(d.versions)}]" if d.versions else ""
            lines.append(f"    {d.port:>5}/tcp {d.service:<16} {d.count:>4} hosts "
                         f"({d.percentage:.1f}%){ver}")
    for host in network.hosts:
        lines.append(render_text(host))
    return "\n".join(lines)


def render_ping(ping: PingResult) -> str:
    lines = [f"PING {ping.host} ({ping.address}) tcp/{ping.port}: "
             f"{ping.sent} sent, {ping.received} received, {ping.loss_pct:.1f}% loss"]
    if ping.received:
        lines.append(f"  min/avg/max = {ping.min_ms:.2f}/{ping.avg_ms:.2f}/{ping.max_ms:.2f} ms")
    return "\n".join(lines)


def render_discovery(target_spec: str, alive: List[str]) -> str:
    lines = [f"Discovery {target_spec}: {len(alive)} hosts up"]
    lines.extend(f"  [+] {host}" for host in alive)
    return "\n".join(lines)


def render(result: Result, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(result)
    if fmt == "csv":
        return to_csv(result)
    if fmt == "text":
        if isinstance(result, NetworkResult):
            return render_network_text(result)
        return render_text(result)
    raise ValueError(f"Unknown format: {fmt}")


# ─── Report Generator ────────────────────────────────────────────────────────

class ReportGenerator:
    """Write rendered results to timestamped files under output_dir."""

    _EXT = {"json": "json", "csv": "csv", "text": "txt"}

    def __init__(self, output_dir: str = "reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(self, result: Result, fmt: str = "json") -> Optional[str]:
        """
        Generate report for a host or network result.

        Returns:
            Path to generated file, or None on error.
        """
        if fmt not in self._EXT:
            raise ValueError(f"Unknown format: {fmt}")
        ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        name = result.address if isinstance(result, HostResult) else result.target_spec
        safe = "".join(ch if ch.isalnum() or ch in ".-" else "_" for ch in name)
        path = self.output_dir / f"netprobe_{safe}_{ts}.{self._EXT[fmt]}"

        try:
            path.write_text(render(result, fmt))
        except OSError as exc:
            log.error(f"Report generation failed: {exc}")
            return None
        return str(path)
