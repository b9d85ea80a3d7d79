"""
core/probe.py
One TCP-connect probe against one (address, port) pair.

  connect ── refused/reset ──→ CLOSED
     │ ───── deadline ───────→ FILTERED
     │ ───── other OSError ──→ FILTERED
     ▼
   OPEN → optional HEAD request → read ≤512 bytes until deadline → close

The whole probe, banner read included, fits inside config.timeout.
probe_port never raises; every outcome becomes a PortResult.
"""

from __future__ import annotations

import asyncio
import time

from core.models import PortResult
from core.service_fingerprint import classify_service
from utils.config import ScanConfig
from utils.constants import BANNER_MAX_BYTES, HTTP_PORTS, PortState
from utils.logger import get_logger

log = get_logger("netprobe.probe")


def payload_for_port(port: int, address: str) -> bytes:
    """Bytes to send after connecting; empty means wait for the greeting."""
    if port in HTTP_PORTS:
        return f"HEAD / HTTP/1.0\r\nHost: {address}\r\n\r\n".encode("ascii", "replace")
    return b""


async def probe_port(address: str, port: int, config: ScanConfig) -> PortResult:
    """Attempt TCP connection to address:port. Returns PortResult."""
    t0 = time.monotonic()
    deadline = t0 + config.timeout

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(address, port),
            timeout=config.timeout,
        )
    except asyncio.TimeoutError:
        return _result(port, PortState.FILTERED, t0)
    except (ConnectionRefusedError, ConnectionResetError):
        return _result(port, PortState.CLOSED, t0)
    except OSError as exc:
        log.debug(f"{address}:{port} unreachable: {exc}")
        return _result(port, PortState.FILTERED, t0)

    rtt_ms = (time.monotonic() - t0) * 1000
    banner = ""
    try:
        if config.grab_banners:
            banner = await _grab_banner(reader, writer, address, port, deadline)
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    service, version = classify_service(port, banner)
    return PortResult(
        port=port,
        state=PortState.OPEN,
        service=service,
        version=version,
        banner=banner,
        response_ms=rtt_ms,
    )


async def _grab_banner(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    address: str,
    port: int,
    deadline: float,
) -> str:
    """
    Send probe payload, then keep reading until 512 bytes, EOF or the
    deadline, whichever comes first.
    """
    data = b""
    try:
        payload = payload_for_port(port, address)
        if payload:
            writer.write(payload)
            await asyncio.wait_for(writer.drain(), timeout=_remaining(deadline))
        while len(data) < BANNER_MAX_BYTES:
            chunk = await asyncio.wait_for(
                reader.read(BANNER_MAX_BYTES - len(data)), timeout=_remaining(deadline),
            )
            if not chunk:
                break
            data += chunk
    except (asyncio.TimeoutError, OSError) as exc:
        # Short read: keep whatever arrived
        log.debug(f"{address}:{port} banner read stopped: {exc!r}")
    return _decode_banner(data)


def _decode_banner(data: bytes) -> str:
    """UTF-8 with replacement, re-capped so the text is ≤512 bytes encoded."""
    text = data[:BANNER_MAX_BYTES].decode("utf-8", errors="replace")
    encoded = text.encode("utf-8")
    if len(encoded) > BANNER_MAX_BYTES:
        text = encoded[:BANNER_MAX_BYTES].decode("utf-8", errors="ignore")
    return text.rstrip()


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


def _result(port: int, state: PortState, t0: float) -> PortResult:
    service, version = classify_service(port, "")
    return PortResult(
        port=port,
        state=state,
        service=service,
        version=version,
        response_ms=(time.monotonic() - t0) * 1000,
    )
