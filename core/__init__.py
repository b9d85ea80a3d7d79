"""
NetProbe Core — Public API

from core import scan_host, scan_network, parse_ports, parse_targets
"""
from core.port_parser    import PortParser, parse_ports
from core.target_parser  import parse_targets, expand_cidr, expand_octet_range
from core.models         import (
    PortResult, HostResult, NetworkResult, ScanSummary, PortDominance, PingResult,
)
from core.service_fingerprint import ServiceFingerprinter, ServiceInfo, fingerprint, classify_service
from core.os_detect      import OSDetector, OSGuess, guess_os
from core.dns            import DNSResolver
from core.probe          import probe_port
from core.aggregator     import build_network_result, summarize, service_histogram, port_dominance
from core.scanner_engine import (
    ScanEngine, scan_host, scan_network, stealth_scan, ping_host, discover_hosts,
)

__all__ = [
    "PortParser", "parse_ports",
    "parse_targets", "expand_cidr", "expand_octet_range",
    "PortResult", "HostResult", "NetworkResult", "ScanSummary", "PortDominance", "PingResult",
    "ServiceFingerprinter", "ServiceInfo", "fingerprint", "classify_service",
    "OSDetector", "OSGuess", "guess_os",
    "DNSResolver", "probe_port",
    "build_network_result", "summarize", "service_histogram", "port_dominance",
    "ScanEngine", "scan_host", "scan_network", "stealth_scan", "ping_host", "discover_hosts",
]
