"""
NetProbe Constants & Enums
Port states, timing presets and curated port lists.
"""

from enum import IntEnum, Enum
from dataclasses import dataclass


# ─── Port States (TCP-connect subset of nmap portlist.h) ─────────────────────
class PortState(IntEnum):
    CLOSED    = 1
    OPEN      = 2
    FILTERED  = 3


class Protocol(str, Enum):
    TCP = "tcp"


# ─── Scan Types ───────────────────────────────────────────────────────────────
class ScanType(str, Enum):
    TCP_CONNECT = "tcp_connect"   # Full 3-way handshake (no root needed)
    STEALTH     = "stealth"       # Serial, shuffled, delayed connect scan


# ─── Timing Presets (mirrors nmap -T0 to -T5) ─────────────────────────────────
@dataclass(frozen=True)
class TimingProfile:
    """Connect-scan timing preset."""
    name: str
    max_concurrent_ports: int
    connection_timeout_ms: float  # milliseconds


TIMING_PROFILES = {
    "paranoid":   TimingProfile("T0-Paranoid",   max_concurrent_ports=1,   connection_timeout_ms=5000),
    "sneaky":     TimingProfile("T1-Sneaky",     max_concurrent_ports=1,   connection_timeout_ms=3000),
    "polite":     TimingProfile("T2-Polite",     max_concurrent_ports=10,  connection_timeout_ms=1500),
    "normal":     TimingProfile("T3-Normal",     max_concurrent_ports=100, connection_timeout_ms=2000),
    "aggressive": TimingProfile("T4-Aggressive", max_concurrent_ports=200, connection_timeout_ms=500),
    "insane":     TimingProfile("T5-Insane",     max_concurrent_ports=500, connection_timeout_ms=250),
}

TIMING_SHORTHAND = {
    "t0": "paranoid", "t1": "sneaky",     "t2": "polite",
    "t3": "normal",   "t4": "aggressive", "t5": "insane",
}

DEFAULT_TIMING = "normal"

# Stealth scan inter-probe delay window (ms)
STEALTH_DELAY_MS = (100, 500)

# ─── Port / Target Limits ─────────────────────────────────────────────────────
PORT_MIN             = 1
PORT_MAX             = 65535
BANNER_MAX_BYTES     = 512
MAX_EXPANDED_TARGETS = 65536   # a /16 worth of addresses

# ─── Probe payloads ───────────────────────────────────────────────────────────
# Client-speaks-first ports: get a HEAD request. Everything else waits
# for the server greeting (SSH, FTP, SMTP, POP3, IMAP, MySQL, VNC).
HTTP_PORTS = frozenset({80, 81, 591, 3000, 5000, 8000, 8008, 8080, 8081, 8888})

# Host discovery: a connect or a RST on any of these proves the host is up
DISCOVERY_PORTS = (80, 443, 22, 21, 23, 25, 53, 8080, 8443, 3389, 445, 139)

# ─── Curated port lists ───────────────────────────────────────────────────────
COMMON_PORTS = [
    21, 22, 23, 25, 53, 80, 110, 111, 135, 139, 143, 161, 389,
    443, 445, 465, 514, 548, 554, 587, 993, 995, 1433, 1521, 2049, 3306, 3389,
    5432, 5900, 6379, 8080, 8443, 9090, 9200, 27017,
]

# Ranked by how often the port is found open (nmap-services frequency order).
# topN beyond this list is padded with the lowest unused port numbers.
TOP_PORTS = [
    80, 23, 443, 21, 22, 25, 3389, 110, 445, 139,
    143, 53, 135, 3306, 8080, 1723, 111, 995, 993, 5900,
    1025, 587, 8888, 199, 1720, 465, 548, 113, 81, 6001,
    10000, 514, 5060, 179, 1026, 2000, 8443, 8000, 32768, 554,
    26, 1433, 49152, 2001, 515, 8008, 49154, 1027, 5666, 646,
    5000, 5631, 631, 49153, 8081, 2049, 88, 79, 5800, 106,
    2121, 1110, 49155, 6000, 513, 990, 5357, 427, 49156, 543,
    544, 5101, 144, 7, 389, 8009, 3128, 444, 9999, 5009,
    7070, 5190, 3000, 5432, 1900, 3986, 13, 1029, 9, 5051,
    6646, 49157, 1028, 873, 1755, 2717, 4899, 9100, 119, 37,
    1000, 3001, 5001, 82, 10010, 1030, 9090, 2107, 1024, 2103,
    6004, 1801, 5050, 19, 8031, 1041, 255, 2967, 1049, 1048,
    1053, 3703, 1056, 1065, 1064, 1054, 17, 808, 3689, 1031,
    1044, 1071, 5901, 100, 9102, 8010, 2869, 1039, 5120, 4001,
    9000, 2105, 636, 1038, 2601, 7000, 6379, 27017, 9200, 11211,
    5672, 6443, 1521, 2181, 5985, 5986, 161, 3268, 1434, 4443,
]

# ─── Layering Contract (hard import rules - enforced by tests) ───────────────
# utils     → imports nothing from the other packages
# core      → may import: utils
# reporting → may import: core, utils
# dashboard → may import: core, reporting, utils
# NEVER: core imports reporting/dashboard, reporting imports dashboard
