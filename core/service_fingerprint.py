"""
core/service_fingerprint.py
Service and version detection from banners, with a port-number fallback.

Precedence:
  1. banner against an ordered (pattern, service) list, first match wins
  2. well-known port table
  3. "unknown"

Versions come from the first capture group of the first matching
per-product pattern.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ServiceInfo:
    """Detected service information."""
    name: str
    product: Optional[str] = None
    version: Optional[str] = None
    method: str = "port_table"       # banner_signature | port_table | none

    def __str__(self) -> str:
        parts = [self.name]
        if self.product:
            parts.append(self.product)
        if self.version:
            parts.append(self.version)
        return " ".join(parts)


# ─── Banner signatures (ordered, first match wins) ────────────────────────────

BANNER_SIGNATURES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^SSH-\d+\.\d+-"),                                   "ssh"),
    (re.compile(r"^HTTP/\d(\.\d)?\s+\d{3}"),                          "http"),
    (re.compile(r"^Server:\s*(nginx|Apache|Microsoft-IIS)", re.I | re.M), "http"),
    (re.compile(r"^220[\s-].*\b(E?SMTP|Postfix|Exim|Sendmail|Mail)", re.I), "smtp"),
    (re.compile(r"^220[\s-]"),                                        "ftp"),
    (re.compile(r"^\+OK"),                                            "pop3"),
    (re.compile(r"^\* OK"),                                           "imap"),
    (re.compile(r"^.\x00\x00\x00\n[\d.]+", re.S),                     "mysql"),
    (re.compile(r"mysql_native_password|MariaDB", re.I),              "mysql"),
    (re.compile(r"^-(ERR|NOAUTH|DENIED)\b|redis_version:"),           "redis"),
    (re.compile(r"PostgreSQL", re.I),                                 "postgresql"),
    (re.compile(r"MongoDB|ismaster", re.I),                           "mongodb"),
    (re.compile(r"^RFB \d{3}\.\d{3}"),                                "vnc"),
]


# ─── Version patterns (ordered, product → first capture group) ────────────────

VERSION_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("OpenSSH",       re.compile(r"OpenSSH[_-]([\w.]+)")),
    ("Apache",        re.compile(r"Apache/([\d.]+)", re.I)),
    ("nginx",         re.compile(r"nginx/([\d.]+)", re.I)),
    ("Microsoft-IIS", re.compile(r"Microsoft-IIS/([\d.]+)", re.I)),
    ("MySQL",         re.compile(r"^.\x00\x00\x00\n([\d.]+[\w.-]*)", re.S)),
]


# ─── Well-known port table ────────────────────────────────────────────────────

PORT_SERVICES: Dict[int, str] = {
    7: "echo", 9: "discard", 13: "daytime", 19: "chargen",
    20: "ftp-data", 21: "ftp", 22: "ssh", 23: "telnet", 25: "smtp",
    53: "domain", 67: "dhcps", 69: "tftp", 79: "finger", 80: "http",
    88: "kerberos", 110: "pop3", 111: "rpcbind", 113: "ident",
    119: "nntp", 123: "ntp", 135: "msrpc", 137: "netbios-ns",
    139: "netbios-ssn", 143: "imap", 161: "snmp", 179: "bgp",
    389: "ldap", 443: "https", 445: "microsoft-ds", 465: "smtps",
    514: "syslog", 515: "printer", 548: "afp", 554: "rtsp",
    587: "submission", 631: "ipp", 636: "ldaps", 873: "rsync",
    993: "imaps", 995: "pop3s", 1080: "socks", 1433: "ms-sql-s",
    1434: "ms-sql-m", 1521: "oracle", 1723: "pptp", 1883: "mqtt",
    2049: "nfs", 2181: "zookeeper", 2375: "docker", 3306: "mysql",
    3389: "ms-wbt-server", 5060: "sip", 5432: "postgresql",
    5672: "amqp", 5900: "vnc", 5985: "wsman", 5986: "wsmans",
    6379: "redis", 6443: "kubernetes-api", 8000: "http-alt",
    8080: "http-proxy", 8443: "https-alt", 8888: "http-alt",
    9090: "prometheus", 9100: "jetdirect", 9200: "elasticsearch",
    9300: "elasticsearch-transport", 11211: "memcached",
    27017: "mongodb", 50000: "sap",
}


# ─── Service Fingerprinter ────────────────────────────────────────────────────

class ServiceFingerprinter:
    """
    Match banner text against service signatures to extract service and
    version. Pure: same (port, banner) always gives the same answer.
    """

    def __init__(
        self,
        signatures: Optional[List[Tuple[re.Pattern, str]]] = None,
        versions: Optional[List[Tuple[str, re.Pattern]]] = None,
        port_table: Optional[Dict[int, str]] = None,
    ):
        self._signatures = signatures if signatures is not None else BANNER_SIGNATURES
        self._versions = versions if versions is not None else VERSION_PATTERNS
        self._ports = port_table if port_table is not None else PORT_SERVICES

    def identify(self, port: int, banner: Optional[str]) -> ServiceInfo:
        """
        Identify service from port + banner.

        Args:
            port: Port number (fallback lookup)
            banner: Raw banner text, may be empty

        Returns:
            ServiceInfo with detected details
        """
        product, version = self._version(banner) if banner else (None, None)

        if banner:
            for pattern, svc_name in self._signatures:
                if pattern.search(banner):
                    return ServiceInfo(
                        name=svc_name, product=product, version=version,
                        method="banner_signature",
                    )

        if port in self._ports:
            return ServiceInfo(
                name=self._ports[port], product=product, version=version,
                method="port_table",
            )

        return ServiceInfo(name="unknown", product=product, version=version,
                           method="none")

    def _version(self, banner: str) -> Tuple[Optional[str], Optional[str]]:
        for product, pattern in self._versions:
            m = pattern.search(banner)
            if m:
                return product, m.group(1)
        return None, None

    def lookup_port(self, port: int) -> str:
        return self._ports.get(port, "unknown")


# ─── Module-level singleton ───────────────────────────────────────────────────

_fingerprinter = ServiceFingerprinter()


def fingerprint(port: int, banner: Optional[str]) -> ServiceInfo:
    """Module-level convenience function."""
    return _fingerprinter.identify(port, banner)


def classify_service(port: int, banner: Optional[str]) -> Tuple[str, str]:
    """(service, version) for a port and its banner; version may be ""."""
    info = _fingerprinter.identify(port, banner)
    return info.name, info.version or ""
