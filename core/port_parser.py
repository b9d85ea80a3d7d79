"""
core/port_parser.py
Robust port specification parser.

Accepts:
  "80"                 → [80]
  "80,443"             → [80, 443]
  "1-1000"             → [1..1000]
  "443,22,80-100,443"  → deduped, first-seen order kept
  "common"             → curated list of well-known service ports
  "top100"             → 100 most frequently open ports
  "-"                  → all ports (1-65535)

Rejects:
  "abc", "99999", "-5", "100-50", "", None
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Tuple

from utils.constants import COMMON_PORTS, PORT_MIN, PORT_MAX, TOP_PORTS
from utils.errors import PortParseError
from utils.validators import validate_port


# ─── Parser ───────────────────────────────────────────────────────────────────

class PortParser:
    """
    Parse an nmap-compatible port specification string.

    All errors raise PortParseError with a human-readable message.
    Output order is first-seen order; duplicates are dropped.
    """

    _SINGLE_RE = re.compile(r"^\d+$")
    _RANGE_RE  = re.compile(r"^(\d+)-(\d+)$")
    _TOP_RE    = re.compile(r"^top(\d+)$", re.IGNORECASE)

    def __init__(self):
        self._top_cache: Dict[int, List[int]] = {}

    # ── Public API ────────────────────────────────────────────────────────────

    def parse(self, spec: str) -> List[int]:
        """
        Parse port spec → deduplicated list in first-seen order.

        Raises PortParseError on any invalid input.
        """
        if not isinstance(spec, str):
            raise PortParseError(f"Expected string, got {type(spec).__name__}")

        spec = spec.strip()
        if not spec:
            raise PortParseError("Port specification is empty")

        # Special keyword: all ports
        if spec == "-":
            return list(range(PORT_MIN, PORT_MAX + 1))

        ports: Dict[int, None] = {}
        for part in spec.split(","):
            part = part.strip()
            if not part:
                continue
            for port in self._parse_token(part):
                ports.setdefault(port, None)

        if not ports:
            raise PortParseError(f"No valid ports parsed from: {spec!r}")

        return list(ports)

    def validate(self, spec: str) -> Tuple[bool, str]:
        """Return (ok, error_message). Never raises."""
        try:
            self.parse(spec)
            return True, ""
        except PortParseError as exc:
            return False, str(exc)

    def top_ports(self, n: int) -> List[int]:
        """
        Return N ports, most frequently open first.

        Only the first len(TOP_PORTS) entries are frequency ranked. Beyond
        that the list is padded with the lowest unused port numbers, so
        top1000 is the ranked table followed by ascending filler.
        """
        if n < 1 or n > PORT_MAX:
            raise PortParseError(f"top{n}: n must be 1..{PORT_MAX}")
        if n not in self._top_cache:
            self._top_cache[n] = _first_n_unique(TOP_PORTS, n)
        return list(self._top_cache[n])

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _parse_token(self, token: str) -> List[int]:
        if self._SINGLE_RE.match(token):
            return [self._validated(int(token))]

        m = self._RANGE_RE.match(token)
        if m:
            start, end = int(m.group(1)), int(m.group(2))
            self._validated(start)
            self._validated(end)
            if start > end:
                raise PortParseError(
                    f"Invalid range {start}-{end}: start > end"
                )
            return list(range(start, end + 1))

        if token.lower() == "common":
            return list(COMMON_PORTS)

        m = self._TOP_RE.match(token)
        if m:
            return self.top_ports(int(m.group(1)))

        raise PortParseError(
            f"Invalid port token: {token!r}  "
            f"(expected integer, start-end range, 'common' or 'topN')"
        )

    @staticmethod
    def _validated(port: int) -> int:
        ok, msg = validate_port(port)
        if not ok:
            raise PortParseError(msg)
        return port


def _first_n_unique(ranked: Iterable[int], n: int) -> List[int]:
    """
    First n unique ports of the ranked list. When the list runs out, the
    lowest unused port numbers fill the remainder so exactly n come back.
    """
    out: Dict[int, None] = {}
    for port in ranked:
        if len(out) >= n:
            break
        out.setdefault(port, None)
    filler = PORT_MIN
    while len(out) < n:
        out.setdefault(filler, None)
        filler += 1
    return list(out)


# ── Module-level convenience ──────────────────────────────────────────────────

_default_parser = PortParser()


def parse_ports(spec: str) -> List[int]:
    return _default_parser.parse(spec)
