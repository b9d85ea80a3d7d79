"""
utils/config.py
Scan configuration.

ScanConfig is a frozen value passed explicitly to every scan entry point;
there is no process-wide mutable default. Presets come from the nmap-style
timing profiles, files are YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

from utils.constants import (
    DEFAULT_TIMING, STEALTH_DELAY_MS, TIMING_PROFILES, TIMING_SHORTHAND,
    TimingProfile,
)
from utils.errors import ConfigError


@dataclass(frozen=True)
class ScanConfig:
    timeout:            float = 2.0        # seconds, per probe
    max_concurrent:     int = 100          # in-flight probes per host
    verbose:            bool = False
    include_down_hosts: bool = False
    grab_banners:       bool = True
    stealth_delay:      Tuple[float, float] = (
        STEALTH_DELAY_MS[0] / 1000.0, STEALTH_DELAY_MS[1] / 1000.0,
    )

    def __post_init__(self):
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ConfigError(f"timeout must be a number, got {self.timeout!r}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be > 0, got {self.timeout}")
        if isinstance(self.max_concurrent, bool) or not isinstance(self.max_concurrent, int):
            raise ConfigError(
                f"max_concurrent must be an integer, got {self.max_concurrent!r}"
            )
        if self.max_concurrent <= 0:
            raise ConfigError(f"max_concurrent must be > 0, got {self.max_concurrent}")
        try:
            lo, hi = self.stealth_delay
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"stealth_delay must be a (min, max) pair, got {self.stealth_delay!r}"
            ) from exc
        if lo < 0 or hi < lo:
            raise ConfigError(f"Invalid stealth delay window {lo}-{hi}")
        object.__setattr__(self, "stealth_delay", (float(lo), float(hi)))

    @classmethod
    def from_timing(cls, name: str = DEFAULT_TIMING, **overrides: Any) -> "ScanConfig":
        """Build a config from a timing preset, then apply overrides."""
        profile = get_timing(name)
        base = cls(
            timeout=profile.connection_timeout_ms / 1000.0,
            max_concurrent=profile.max_concurrent_ports,
        )
        return base.with_overrides(**overrides)

    def with_overrides(self, **overrides: Any) -> "ScanConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        return replace(self, **changes)


def get_timing(name: str = DEFAULT_TIMING) -> TimingProfile:
    """
    Get a timing profile by name.
    Accepts: paranoid, sneaky, polite, normal, aggressive, insane
             or T0 .. T5 shorthand.
    """
    key = TIMING_SHORTHAND.get(name.lower(), name.lower())
    if key not in TIMING_PROFILES:
        raise ConfigError(
            f"Unknown timing profile {name!r}. "
            f"Choose from: {list(TIMING_PROFILES)}"
        )
    return TIMING_PROFILES[key]


def read_config_file(path: str | Path) -> Dict[str, Any]:
    """Parse a YAML config file. Missing file → empty dict."""
    p = Path(path)
    if not p.exists():
        return {}
    try:
        data = yaml.safe_load(p.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML in {p}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{p}: top level must be a mapping")
    return data


def load_config(path: str | Path | None = None, **overrides: Any) -> ScanConfig:
    """
    Build a ScanConfig from an optional YAML file plus explicit overrides.

    Recognised keys:
        timing, timeout, max_concurrent, verbose, include_down_hosts,
        grab_banners, stealth_delay_ms: [min, max]

    Overrides (e.g. CLI flags) win over file values; None means "unset".
    """
    data = read_config_file(path) if path else {}
    scan = dict(data.get("scan", data))
    scan.pop("server", None)

    timing = overrides.pop("timing", None) or scan.pop("timing", DEFAULT_TIMING)
    scan.pop("timing", None)

    delay_ms = scan.pop("stealth_delay_ms", None)
    if delay_ms is not None:
        try:
            lo, hi = delay_ms
            scan["stealth_delay"] = (float(lo) / 1000.0, float(hi) / 1000.0)
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"stealth_delay_ms must be [min, max], got {delay_ms!r}"
            ) from exc

    config = ScanConfig.from_timing(timing, **scan)
    return config.with_overrides(**overrides)


__all__ = ["ScanConfig", "get_timing", "read_config_file", "load_config"]
