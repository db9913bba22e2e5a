"""Security utilities for YT Audio Proxy.

This module provides security functions for:
- SSRF protection for /api/proxy targets, with DNS resolution
- Redaction of sensitive yt-dlp flags before command lines are logged
- Range header validation before a caller's header is sent upstream
"""

import ipaddress
import logging
import re
import socket
import time
import urllib.parse
from collections import OrderedDict
from typing import List, Optional, Tuple

from settings import get_settings

logger = logging.getLogger(__name__)

# Upper bound on cached hostnames; proxy URLs are caller-controlled
DNS_CACHE_MAX_SIZE = 1000


class LRUDNSCache:
    """Size-bounded LRU cache of hostname -> (ips, resolved_at)."""

    def __init__(self, max_size: int = DNS_CACHE_MAX_SIZE):
        self._cache: OrderedDict[str, Tuple[List[str], float]] = OrderedDict()
        self._max_size = max_size

    def get(self, hostname: str) -> Optional[Tuple[List[str], float]]:
        """Return the cached entry and mark it most recently used."""
        if hostname in self._cache:
            self._cache.move_to_end(hostname)
            return self._cache[hostname]
        return None

    def set(self, hostname: str, ips: List[str], timestamp: float) -> None:
        """Store an entry, dropping the least recently used ones past max_size."""
        if hostname in self._cache:
            self._cache.move_to_end(hostname)
        self._cache[hostname] = (ips, timestamp)
        while len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


# Shared by every proxy request; entries expire after settings.dns_cache_ttl
_dns_cache = LRUDNSCache()

# Hostnames that are never valid proxy targets (loopback and cloud/cluster metadata)
BLOCKED_HOSTNAMES = frozenset({
    "localhost",
    "localhost.localdomain",
    "metadata.google.internal",
    "metadata",
    "kubernetes.default.svc",
    "kubernetes.default",
    "kubernetes",
    "instance-data",
})

BLOCKED_SUFFIXES = (".internal", ".local", ".localhost")

# ipaddress reports these as private, but they are not RFC 1918 networks and
# audio CDNs can sit behind them
_SSRF_ALLOWED_RANGES = (
    ipaddress.ip_network("198.18.0.0/15"),  # RFC 2544 benchmarking
    ipaddress.ip_network("100.64.0.0/10"),  # RFC 6598 carrier-grade NAT
)


def _resolve_hostname(hostname: str) -> List[str]:
    """Resolve hostname to its IP addresses, using the LRU cache.

    Args:
        hostname: Host part of the proxy target

    Returns:
        Resolved IP addresses as strings, or an empty list if resolution fails
    """
    now = time.time()

    cached = _dns_cache.get(hostname)
    if cached:
        ips, timestamp = cached
        if now - timestamp < get_settings().dns_cache_ttl:
            return ips

    try:
        results = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC)
    except socket.gaierror as e:
        logger.warning(f"DNS resolution failed for {hostname}: {e}")
        return []

    ips = list(set(result[4][0] for result in results))
    _dns_cache.set(hostname, ips, now)
    return ips


def _is_ip_safe(ip_str: str) -> Tuple[bool, Optional[str]]:
    """Check that an IP address is publicly routable.

    IPv4-mapped IPv6 addresses (::ffff:127.0.0.1) are judged by the IPv4
    address they carry.

    Args:
        ip_str: IP address as string

    Returns:
        Tuple of (is_safe, error_reason)
    """
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return False, "invalid IP address"

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped:
        return _is_ip_safe(str(ip.ipv4_mapped))

    if ip.is_loopback:
        return False, "loopback address"
    if any(ip in net for net in _SSRF_ALLOWED_RANGES):
        return True, None
    if ip.is_private:
        return False, "private address"
    if ip.is_link_local:
        return False, "link-local address"
    if ip.is_reserved:
        return False, "reserved address"
    if ip.is_multicast:
        return False, "multicast address"
    if ip.is_unspecified:
        return False, "unspecified address"
    return True, None


def is_safe_url_strict(url: str, resolve_dns: bool = True) -> Tuple[bool, Optional[str]]:
    """Check if a proxy target is safe from SSRF attacks.

    Checks, in order:
    1. Known dangerous hostnames, metadata-like names and internal suffixes
    2. Literal IP hosts, validated directly
    3. Optionally, every address the hostname resolves to

    The proxy runs this on the caller's URL and again on each redirect target.

    Args:
        url: The URL to validate
        resolve_dns: If True, resolve the hostname and check all IPs

    Returns:
        Tuple of (is_safe, error_reason)
        - (True, None) if URL is safe
        - (False, "reason") if URL is blocked
    """
    try:
        hostname = urllib.parse.urlparse(url).hostname
    except (ValueError, AttributeError) as e:
        return False, f"URL parsing error: {e}"

    if not hostname:
        return False, "missing hostname"

    hostname_lower = hostname.lower()

    if hostname_lower in BLOCKED_HOSTNAMES:
        return False, f"blocked hostname: {hostname}"
    if "metadata" in hostname_lower:
        return False, f"metadata-like hostname: {hostname}"
    for suffix in BLOCKED_SUFFIXES:
        if hostname_lower.endswith(suffix):
            return False, f"blocked hostname suffix: {suffix}"

    # Literal IP hosts need no DNS lookup
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        pass
    else:
        is_safe, reason = _is_ip_safe(hostname)
        if not is_safe:
            return False, f"IP address {reason}"
        return True, None

    if resolve_dns:
        resolved_ips = _resolve_hostname(hostname)
        if not resolved_ips:
            return False, f"DNS resolution failed for {hostname}"
        # A single private answer blocks the host
        for ip_str in resolved_ips:
            is_safe, reason = _is_ip_safe(ip_str)
            if not is_safe:
                return False, f"hostname {hostname} resolves to {reason} ({ip_str})"

    return True, None


def clear_dns_cache() -> None:
    """Clear the DNS resolution cache. Useful for testing."""
    _dns_cache.clear()


# yt-dlp flags whose values must not reach the logs
SENSITIVE_FLAGS = frozenset({
    "--password",
    "--video-password",
    "--username",
    "--cookies",
    "--cookies-from-browser",
    "--add-header",
})


def sanitize_command_for_logging(cmd: List[str]) -> str:
    """Join a command for logging, redacting values of sensitive flags.

    Handles both '--flag value' and '--flag=value' forms.
    """
    sanitized = []
    skip_next = False

    for arg in cmd:
        if skip_next:
            skip_next = False
            sanitized.append("[REDACTED]")
            continue

        if arg in SENSITIVE_FLAGS:
            sanitized.append(arg)
            skip_next = True
            continue

        flag, sep, _ = arg.partition("=")
        if sep and flag in SENSITIVE_FLAGS:
            sanitized.append(f"{flag}=[REDACTED]")
        else:
            sanitized.append(arg)

    return " ".join(sanitized)


# RFC 7233 byte ranges: "bytes=0-", "bytes=100-199", "bytes=-500", comma-separated
RANGE_HEADER_PATTERN = re.compile(r"bytes=(\d*-\d*)(,\s*\d*-\d*)*")

MAX_RANGE_HEADER_LENGTH = 256


def is_valid_range_header(value: str) -> bool:
    """Check a client Range header before it is forwarded upstream."""
    if not value or len(value) > MAX_RANGE_HEADER_LENGTH:
        return False
    if not RANGE_HEADER_PATTERN.fullmatch(value):
        return False
    # "bytes=-" has neither a start nor a suffix length
    return all(part.strip() != "-" for part in value[len("bytes="):].split(","))
