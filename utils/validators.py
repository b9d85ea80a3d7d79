"""
utils/validators.py
Input validation and sanitization functions
"""

import ipaddress
import re
from typing import Tuple

from utils.constants import PORT_MIN, PORT_MAX


# RFC 1123 hostname: dot-separated labels, 1-63 chars, no leading/trailing hyphen
_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.(?!-)[A-Za-z0-9-]{1,63}(?<!-))*\.?$"
)


def is_ip_address(value: str) -> bool:
    """True for a valid IPv4 or IPv6 literal."""
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def validate_host(host: str) -> Tuple[bool, str]:
    """
    Validate a single host identifier (IP literal or hostname).

    Dotted all-numeric strings must be valid IPv4, so "10.0.0.300"
    is rejected rather than treated as a hostname.

    Returns:
        (is_valid, error_message) tuple
    """
    if not host or not isinstance(host, str):
        return (False, "Host must be a non-empty string")

    if is_ip_address(host):
        return (True, "")

    labels = host.rstrip(".").split(".")
    if all(label.isdigit() for label in labels):
        return (False, f"Invalid IPv4 address: {host!r}")

    if not _HOSTNAME_RE.match(host):
        return (False, f"Invalid hostname: {host!r}")

    return (True, "")


def validate_port(port: int) -> Tuple[bool, str]:
    """
    Validate that port number is in valid range [1-65535].

    Args:
        port: Port number to validate

    Returns:
        (is_valid, error_message) tuple
    """
    if not isinstance(port, int) or isinstance(port, bool):
        return (False, "Port must be an integer")

    if port < PORT_MIN or port > PORT_MAX:
        return (False, f"Port {port} out of valid range [{PORT_MIN}, {PORT_MAX}]")

    return (True, "")


def sanitize_banner(banner: str, max_length: int = 80) -> str:
    """
    Make a raw service banner safe for one-line display:
    - Removing control characters except newlines/tabs
    - Collapsing whitespace
    - Truncating to max_length

    Args:
        banner: Raw banner string
        max_length: Maximum allowed length (default: 80)

    Returns:
        Sanitized banner string
    """
    if not banner or not isinstance(banner, str):
        return ""

    # Remove control characters except \n, \r, \t
    sanitized = re.sub(r'[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f-\x9f]', '', banner)

    # Strip and collapse multiple spaces
    sanitized = ' '.join(sanitized.split())

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized


__all__ = ["is_ip_address", "validate_host", "validate_port", "sanitize_banner"]
