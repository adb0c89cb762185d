import ipaddress
import socket
from urllib.parse import urlparse

from app.core.config import get_settings
from app.core.errors import FetchFailed, InvalidSource

ALLOWED_SCHEMES = {"http", "https"}
LOOPBACK_NAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}


def _as_ip(host: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    try:
        return ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return None


def is_loopback_host(host: str) -> bool:
    """Literal check only: hostnames and IP literals that name this machine."""
    host = host.lower().rstrip(".")
    if host in LOOPBACK_NAMES or host.endswith(".localhost"):
        return True
    ip = _as_ip(host)
    return ip is not None and (ip.is_loopback or ip.is_unspecified)


def _is_unsafe_ip(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_unspecified


def resolve_host(host: str) -> list[str]:
    try:
        infos = socket.getaddrinfo(host, None)
    except socket.gaierror as exc:
        raise FetchFailed(f"Could not resolve host: {host}", status_text=str(exc)) from exc
    return [info[4][0] for info in infos]


def _is_private_host(host: str) -> bool:
    literal = _as_ip(host)
    addresses = [str(literal)] if literal is not None else resolve_host(host)
    for address in addresses:
        if _is_unsafe_ip(ipaddress.ip_address(address.split("%")[0])):
            return True
    return False


def assert_allowed_url(url: str) -> None:
    """Reject non-http(s) URLs, local hosts, hosts resolving to private ranges and
    hosts outside the optional allowlist."""
    settings = get_settings()
    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise InvalidSource("Only HTTP and HTTPS URLs are supported")
    host = (parsed.hostname or "").lower()
    if not host:
        raise InvalidSource("URL host is missing")
    if is_loopback_host(host):
        raise InvalidSource("Local URLs are not accessible for import")
    if _is_private_host(host):
        raise InvalidSource("Resolved host is private or unsafe")

    allowlist = settings.allowed_fetch_host_list
    if not allowlist:
        return
    if host not in allowlist:
        raise InvalidSource(f"Host not in allowlist: {host}")
