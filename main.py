#!/usr/bin/env python3
"""
NetProbe v2.0 — Async TCP-connect Network Scanner
main.py — CLI entry point

Usage:
  python3 main.py --scan 192.168.1.1
  python3 main.py --scan 192.168.1.0/24 --ports top100 --timing aggressive
  python3 main.py --scan 10.0.0.5-20,gw.lan --ports 22,80,443,8000-8100
  python3 main.py --scan 192.168.1.1 --ports common --stealth
  python3 main.py --scan 192.168.1.1 --format csv --output reports
  python3 main.py --ping 192.168.1.1 --count 4
  python3 main.py --discover 192.168.1.0/24
  python3 main.py --serve --host 127.0.0.1 --serve-port 8089
"""

from __future__ import annotations

import argparse
import asyncio
import sys

# Try uvloop for 2-4× speed on Linux/macOS
try:
    import uvloop
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
except ImportError:
    pass

from core.port_parser import PortParser
from core.scanner_engine import ScanEngine
from core.target_parser import parse_targets
from reporting.report_generator import ReportGenerator, render, render_discovery, render_ping
from utils.config import ScanConfig, load_config, read_config_file
from utils.errors import ConfigError, InvalidSpec
from utils.logger import get_logger, set_verbose

log = get_logger("netprobe")

BANNER = r"""
  ╔═══════════════════════════════════════════════╗
  ║   NetProbe v2.0  ·  Async TCP-connect Engine  ║
  ╚═══════════════════════════════════════════════╝"""


# ─── Core scan runner ─────────────────────────────────────────────────────────

async def _run_scan(
    targets_spec: str,
    ports_spec: str,
    config: ScanConfig,
    stealth: bool,
    fmt: str,
    output_dir: str | None,
    quiet: bool,
) -> int:
    """Parse specs, scan, render. Returns process exit code."""
    try:
        ports = PortParser().parse(ports_spec)
        targets = parse_targets(targets_spec)
    except InvalidSpec as exc:
        log.error(f"Invalid specification: {exc}")
        return 1

    log.info(f"Targets  : {len(targets)}  ({targets_spec})")
    log.info(f"Ports    : {len(ports)}  ({ports_spec})")
    log.info(f"Timeout  : {config.timeout:.2f}s   Concurrency: {config.max_concurrent}")
    if stealth:
        lo, hi = config.stealth_delay
        log.info(f"Stealth  : serial, shuffled, {lo*1000:.0f}-{hi*1000:.0f}ms delay")

    def cb(msg: str):
        if not quiet:
            log.info(msg)

    engine = ScanEngine(config, progress_cb=cb)

    if stealth:
        if len(targets) != 1:
            log.error("--stealth scans a single host")
            return 1
        result = await engine.stealth_scan(targets[0], ports)
    elif len(targets) == 1 and targets_spec.strip() == targets[0]:
        result = await engine.scan_host(targets[0], ports)
    else:
        result = await engine.scan_network(targets_spec, ports)

    if output_dir:
        path = ReportGenerator(output_dir=output_dir).generate(result, fmt)
        if path is None:
            return 1
        print(f"\n  ✓ Report saved: {path}")
    else:
        print(render(result, fmt))
    return 0


async def _run_ping(target: str, count: int, port: int, config: ScanConfig) -> int:
    """TCP ping. Exit 0 when at least one reply came back."""
    try:
        ping = await ScanEngine(config, progress_cb=log.info).ping_host(target, count, port)
    except ValueError as exc:
        log.error(f"Invalid ping request: {exc}")
        return 1
    print(render_ping(ping))
    return 0 if ping.received else 2


async def _run_discover(targets_spec: str, config: ScanConfig, quiet: bool) -> int:
    def cb(msg: str):
        if not quiet:
            log.info(msg)

    try:
        alive = await ScanEngine(config, progress_cb=cb).discover_hosts(targets_spec)
    except InvalidSpec as exc:
        log.error(f"Invalid specification: {exc}")
        return 1
    print(render_discovery(targets_spec, alive))
    return 0


# ─── CLI ─────────────────────────────────────────────────────────────────────

def build_cli() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="netprobe",
        description="NetProbe v2.0 — Async TCP-connect Network Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Targets:      10.0.0.1  |  host.lan  |  10.0.0.0/24  |  10.0.0.5-20  |  a,b,c
Port specs:   80  |  80,443  |  1-1000  |  common  |  top100  |  - (all)
Timing:       paranoid t0  sneaky t1  polite t2
              normal t3   aggressive t4   insane t5

Examples:
  %(prog)s --scan 192.168.1.1
  %(prog)s --scan 192.168.1.0/24 --ports top100 --timing t4
  %(prog)s --scan 192.168.1.1 --ports common --stealth
  %(prog)s --scan 192.168.1.1 --format json --output reports
  %(prog)s --ping 192.168.1.1 --count 4
  %(prog)s --discover 192.168.1.0/24
  %(prog)s --serve --host 127.0.0.1
""",
    )
    g = ap.add_argument_group
    s = g("Scan")
    s.add_argument("--scan",           metavar="TARGETS", help="IP, hostname, CIDR, range, or comma list")
    s.add_argument("--ports",          metavar="SPEC",    default="common",
                   help="Port spec (default: common)")
    s.add_argument("--timing",         metavar="PROFILE", default=None,
                   choices=["paranoid","sneaky","polite","normal","aggressive","insane",
                            "t0","t1","t2","t3","t4","t5"])
    s.add_argument("--timeout",        type=float, metavar="SEC", help="Per-probe timeout")
    s.add_argument("--max-concurrent", type=int,   metavar="N",   help="In-flight probes per host")
    s.add_argument("--stealth",        action="store_true", help="Serial, shuffled, delayed probes")
    s.add_argument("--include-down",   action="store_true", help="Report hosts with no response")
    s.add_argument("--no-banner",      action="store_true", help="Skip banner grabbing")

    p = g("Reachability")
    p.add_argument("--ping",           metavar="TARGET", help="TCP-connect ping (RTT min/avg/max)")
    p.add_argument("--count",          type=int, default=4, metavar="N", help="Ping attempts (default: 4)")
    p.add_argument("--ping-port",      type=int, default=80, metavar="PORT", help="Ping port (default: 80)")
    p.add_argument("--discover",       metavar="TARGETS", help="Connect sweep; list hosts that answer")

    r = g("Output")
    r.add_argument("--format",         choices=["text","json","csv"], default="text")
    r.add_argument("--output",         metavar="DIR", help="Write report file instead of stdout")

    d = g("Server")
    d.add_argument("--serve",          action="store_true", help="Start HTTP status/scan endpoint")
    d.add_argument("--host",           default=None)
    d.add_argument("--serve-port",     type=int, default=None, metavar="PORT")

    ap.add_argument("--config",        default="config.yaml", metavar="FILE")
    ap.add_argument("--verbose", "-v", action="store_true", help="Per-probe debug logging")
    ap.add_argument("--quiet",         action="store_true", help="Suppress progress output")
    ap.add_argument("--no-logo",       action="store_true", help="Hide ASCII banner")
    ap.add_argument("--version",       action="version",   version="NetProbe 2.0.0")
    return ap


def main(argv: list[str] | None = None) -> None:
    ap = build_cli()
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        ap.print_help(); sys.exit(0)
    args = ap.parse_args(argv)

    if not args.no_logo:
        print(BANNER)

    try:
        config = load_config(
            args.config,
            timing=args.timing,
            timeout=args.timeout,
            max_concurrent=args.max_concurrent,
            verbose=True if args.verbose else None,
            include_down_hosts=True if args.include_down else None,
            grab_banners=False if args.no_banner else None,
        )
    except ConfigError as exc:
        log.error(f"Config error: {exc}")
        sys.exit(1)
    set_verbose(config.verbose)

    try:
        if args.scan:
            code = asyncio.run(_run_scan(
                args.scan, args.ports, config, args.stealth,
                args.format, args.output, args.quiet,
            ))
            sys.exit(code)

        elif args.ping:
            sys.exit(asyncio.run(_run_ping(args.ping, args.count, args.ping_port, config)))

        elif args.discover:
            sys.exit(asyncio.run(_run_discover(args.discover, config, args.quiet)))

        elif args.serve:
            server_cfg = {
                **read_config_file(args.config).get("server", {}),
                **{k: v for k, v in (("host", args.host), ("port", args.serve_port)) if v is not None},
            }
            from dashboard.app import run_dashboard
            run_dashboard(server_cfg, config)

        else:
            ap.print_help()

    except KeyboardInterrupt:
        print("\n  [!] Interrupted by user")
        sys.exit(0)
    except Exception as exc:
        log.exception(f"Fatal error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
