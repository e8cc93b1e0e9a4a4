# Client identity for rate limiting.
# Default: the socket peer address (web server restores the real IP).
# trust_proxy=True: proxy headers first, only behind a proxy you control.

import ipaddress

from fastapi import Request

PROXY_HEADERS = (
    "CF-Connecting-IP",  # Cloudflare
    "X-Forwarded-For",   # Standard proxy header
    "X-Real-IP",         # Nginx
)

UNKNOWN_IP = "0.0.0.0"


def _valid_ip(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip()
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return None
    return value


def get_client_ip(request: Request, trust_proxy: bool = False) -> str:
    if trust_proxy:
        for header in PROXY_HEADERS:
            raw = request.headers.get(header)
            if not raw:
                continue
            # X-Forwarded-For can have multiple IPs - first is client
            ip = _valid_ip(raw.split(",")[0])
            if ip:
                return ip

    host = request.client.host if request.client else None
    return _valid_ip(host) or UNKNOWN_IP
