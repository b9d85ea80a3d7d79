"""
core/dns.py
Best-effort async DNS helper used by the scheduler.

Forward lookup failures raise ResolutionFailure so the caller can decide
to fall back to the raw target string. Reverse lookups never fail: an
empty string means "no name".
"""

from __future__ import annotations

import asyncio
import socket

from utils.errors import ResolutionFailure
from utils.logger import get_logger
from utils.validators import is_ip_address

log = get_logger("netprobe.dns")


class DNSResolver:
    """Async resolver on top of loop.getaddrinfo / loop.getnameinfo."""

    def __init__(self, timeout: float = 2.0):
        self.timeout = timeout

    async def resolve(self, target: str) -> str:
        """Return the first address for target. IP literals pass through."""
        if is_ip_address(target):
            return target
        loop = asyncio.get_running_loop()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(target, None, type=socket.SOCK_STREAM),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ResolutionFailure(target, "lookup timed out") from exc
        except OSError as exc:
            raise ResolutionFailure(target, str(exc)) from exc

        # Prefer IPv4 to match dotted-quad output elsewhere
        infos = sorted(infos, key=lambda i: i[0] != socket.AF_INET)
        if not infos:
            raise ResolutionFailure(target, "no addresses")
        return infos[0][4][0]

    async def reverse(self, address: str) -> str:
        """PTR name for address, or "" when there is none."""
        loop = asyncio.get_running_loop()
        try:
            hostname, _ = await asyncio.wait_for(
                loop.getnameinfo((address, 0), socket.NI_NAMEREQD),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, OSError) as exc:
            log.debug(f"reverse lookup for {address} failed: {exc}")
            return ""
        return hostname if hostname and hostname != address else ""
