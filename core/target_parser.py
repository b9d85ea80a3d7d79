"""
core/target_parser.py
Target specification parser.

Accepts (comma-separated, whitespace trimmed):
  "192.168.1.10"          → single IP
  "scanme.example.org"    → hostname (resolved later, best-effort)
  "10.0.0.0/24"           → CIDR block
  "10.0.0.5-20"           → last-octet range

Output is deduplicated in first-seen order.
"""

from __future__ import annotations

import ipaddress
import re
from typing import Dict, List

from utils.constants import MAX_EXPANDED_TARGETS
from utils.errors import TargetParseError
from utils.validators import validate_host


_OCTET_RANGE_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})-(\d{1,3})$")


def expand_cidr(cidr: str) -> List[str]:
    """
    Expand an IPv4 CIDR block into host addresses.

    Prefixes /24 through /29 drop the network and broadcast address
    (a /24 gives 254 hosts). Shorter prefixes and /30-/32 are expanded
    literally, so a /30 yields all four addresses and a /32 yields one.
    """
    try:
        net = ipaddress.IPv4Network(cidr.strip(), strict=False)
    except (ipaddress.AddressValueError, ipaddress.NetmaskValueError, ValueError) as exc:
        raise TargetParseError(f"Invalid CIDR: {cidr!r} ({exc})") from exc

    if net.num_addresses > MAX_EXPANDED_TARGETS:
        raise TargetParseError(
            f"CIDR {cidr!r} spans {net.num_addresses} addresses, "
            f"exceeds limit {MAX_EXPANDED_TARGETS}"
        )

    if 24 <= net.prefixlen <= 29:
        return [str(ip) for ip in net.hosts()]
    return [str(ip) for ip in net]


def expand_octet_range(spec: str) -> List[str]:
    """Expand "a.b.c.start-end". Last octets 0 and 255 are never emitted."""
    m = _OCTET_RANGE_RE.match(spec.strip())
    if not m:
        raise TargetParseError(f"Invalid address range: {spec!r}")

    a, b, c, start, end = (int(g) for g in m.groups())
    if any(octet > 255 for octet in (a, b, c, start, end)):
        raise TargetParseError(f"Octet out of range in {spec!r}")
    if start > end:
        raise TargetParseError(f"Invalid range {start}-{end}: start > end")

    return [
        f"{a}.{b}.{c}.{last}"
        for last in range(start, end + 1)
        if last not in (0, 255)
    ]


def parse_targets(spec: str) -> List[str]:
    """
    Parse target spec → deduplicated list of host identifiers.

    Raises TargetParseError on any invalid segment.
    """
    if not isinstance(spec, str):
        raise TargetParseError(f"Expected string, got {type(spec).__name__}")
    if not spec.strip():
        raise TargetParseError("Target specification is empty")

    targets: Dict[str, None] = {}
    for segment in spec.split(","):
        segment = segment.strip()
        if not segment:
            continue
        for host in _parse_segment(segment):
            targets.setdefault(host, None)
            if len(targets) > MAX_EXPANDED_TARGETS:
                raise TargetParseError(
                    f"Target spec expands past {MAX_EXPANDED_TARGETS} hosts"
                )

    if not targets:
        raise TargetParseError(f"No valid targets parsed from: {spec!r}")

    return list(targets)


def _parse_segment(segment: str) -> List[str]:
    if "/" in segment:
        return expand_cidr(segment)

    if _OCTET_RANGE_RE.match(segment):
        return expand_octet_range(segment)

    ok, msg = validate_host(segment)
    if not ok:
        raise TargetParseError(msg)
    return [segment]
