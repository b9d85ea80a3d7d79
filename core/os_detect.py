"""
core/os_detect.py
Lightweight OS guess from the set of open TCP ports.

Connect scans see no TTL or window size, so all that is left is which
services a host exposes. Rules are evaluated in fixed priority order:

  ≥2 of {135,139,445,3389}   → Windows          (high)
  3389 or 445 alone          → Windows          (medium)
  ≥2 of {22,111,2049}        → Linux/Unix
  548 or 5900                → macOS
  161 and 22                 → Network Device
  otherwise                  → Unknown (0.0)

The result is advisory: confidence is carried alongside the label so
callers never mistake it for ground truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class OSGuess:
    """OS detection result."""
    os_family: str           # Windows, Linux/Unix, macOS, Network Device, Unknown
    confidence: float        # 0.0 – 1.0
    method: str = "open_port_heuristic"
    reason: str = ""


_WINDOWS_PORTS = frozenset({135, 139, 445, 3389})
_UNIX_PORTS    = frozenset({22, 111, 2049})


def _at_least(n: int, group: frozenset) -> Callable[[frozenset], bool]:
    return lambda ports: len(ports & group) >= n


_RULES: List[Tuple[Callable[[frozenset], bool], str, float, str]] = [
    (_at_least(2, _WINDOWS_PORTS),              "Windows",        0.90, "2+ of msrpc/netbios/smb/rdp"),
    (lambda p: bool(p & {3389, 445}),           "Windows",        0.70, "rdp or smb open"),
    (_at_least(2, _UNIX_PORTS),                 "Linux/Unix",     0.65, "2+ of ssh/rpcbind/nfs"),
    (lambda p: bool(p & {548, 5900}),           "macOS",          0.50, "afp or vnc open"),
    (lambda p: {161, 22} <= p,                  "Network Device", 0.50, "snmp + ssh open"),
]

UNKNOWN = OSGuess(os_family="Unknown", confidence=0.0, reason="no rule matched")


# ─── Detector ────────────────────────────────────────────────────────────────

class OSDetector:
    """
    Infer OS from the open-port set of a connect scan.
    Pure function of its input; no network I/O.
    """

    def detect(self, open_ports: Iterable[int]) -> OSGuess:
        ports = frozenset(open_ports)
        for matches, family, confidence, reason in _RULES:
            if matches(ports):
                return OSGuess(os_family=family, confidence=confidence,
                               reason=reason)
        return UNKNOWN

    @staticmethod
    def format_guess(guess: Optional[OSGuess]) -> str:
        if not guess or guess.os_family == "Unknown":
            return "Unknown"
        pct = int(round(guess.confidence * 100))
        return f"{guess.os_family} ({pct}% confidence, {guess.method})"


_detector = OSDetector()


def guess_os(open_ports: Iterable[int]) -> Tuple[str, float]:
    """(os_guess, confidence) for a set of open ports."""
    g = _detector.detect(open_ports)
    return g.os_family, g.confidence
