"""
dashboard/app.py
Minimal Flask status/scan endpoint.

  GET /health                               → {"status": "ok", ...}
  GET /api/scan?host=H&ports=SPEC           → host result JSON
  GET /api/network?targets=SPEC&ports=SPEC  → network result JSON

Owns no scanning logic: it parses request args, calls the scheduler's
public entry points and serializes their results through reporting.

Security properties:
  - debug=False enforced programmatically (cannot be overridden by env)
  - Stacktraces never exposed to client
  - Per-request port and host caps
"""

from __future__ import annotations

import asyncio
import secrets
from typing import Optional

from flask import Flask, jsonify, request

from core.port_parser import parse_ports
from core.scanner_engine import scan_host, scan_network
from core.target_parser import parse_targets
from reporting.report_generator import host_to_dict, network_to_dict
from utils.config import ScanConfig
from utils.errors import InvalidSpec

VERSION = "2.0.0"


# -- Factory ------------------------------------------------------------------

def create_app(cfg: Optional[dict] = None, scan_config: Optional[ScanConfig] = None) -> Flask:
    """
    Application factory.

    cfg keys:
      secret_key     str  -- generated when absent
      default_ports  str  -- port spec used when ?ports= is missing
      max_ports      int  -- cap on ports per request (default 1024)
      max_hosts      int  -- cap on hosts per /api/network request (default 256)
    """
    cfg = cfg or {}
    scan_config = scan_config or ScanConfig()
    app = Flask(__name__)

    app.config["SECRET_KEY"]           = cfg.get("secret_key") or secrets.token_hex(32)
    app.config["DEBUG"]                = False   # HARD -- no env override
    app.config["PROPAGATE_EXCEPTIONS"] = False

    default_ports = cfg.get("default_ports", "common")
    max_ports     = int(cfg.get("max_ports", 1024))
    max_hosts     = int(cfg.get("max_hosts", 256))

    def _ports_arg() -> list:
        ports = parse_ports(request.args.get("ports", default_ports))
        if len(ports) > max_ports:
            raise InvalidSpec(f"{len(ports)} ports requested, limit is {max_ports}")
        return ports

    # Error handlers (no stacktrace leakage)
    @app.errorhandler(InvalidSpec)
    def _bad_spec(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(404)
    def _e404(e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def _e405(e):
        return jsonify({"error": "method not allowed"}), 405

    @app.errorhandler(Exception)
    def _unhandled(e):
        app.logger.exception("Unhandled exception")
        return jsonify({"error": "internal server error"}), 500

    # Routes
    @app.route("/health")
    def health():
        return jsonify({
            "status":         "ok",
            "version":        VERSION,
            "timeout":        scan_config.timeout,
            "max_concurrent": scan_config.max_concurrent,
        })

    @app.route("/api/scan")
    def api_scan():
        host = request.args.get("host", "").strip()
        if not host:
            raise InvalidSpec("missing 'host' parameter")
        targets = parse_targets(host)
        if len(targets) != 1:
            raise InvalidSpec("/api/scan takes a single host; use /api/network")
        ports = _ports_arg()
        result = asyncio.run(scan_host(targets[0], ports, scan_config))
        return jsonify(host_to_dict(result))

    @app.route("/api/network")
    def api_network():
        spec = request.args.get("targets", "").strip()
        if not spec:
            raise InvalidSpec("missing 'targets' parameter")
        n_hosts = len(parse_targets(spec))
        if n_hosts > max_hosts:
            raise InvalidSpec(f"{n_hosts} hosts requested, limit is {max_hosts}")
        ports = _ports_arg()
        result = asyncio.run(scan_network(spec, ports, scan_config))
        return jsonify(network_to_dict(result))

    return app


# -- Server runner ------------------------------------------------------------

def run_dashboard(cfg: dict, scan_config: ScanConfig) -> None:
    app = create_app(cfg, scan_config)
    host = cfg.get("host", "127.0.0.1")
    port = cfg.get("port", 8089)
    print(f"[*] NetProbe API at http://{host}:{port}")
    print("[*]   GET /health")
    print("[*]   GET /api/scan?host=X&ports=SPEC")
    print("[*]   GET /api/network?targets=SPEC&ports=SPEC")
    app.run(host=host, port=port, debug=False, use_reloader=False)
