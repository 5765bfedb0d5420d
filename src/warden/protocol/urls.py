"""URL normalisation used wherever Warden compares URLs.

Two URLs match when ``scheme://host[:port]path`` is identical after:

  - lower-casing scheme and host
  - dropping a leading ``www.`` host label
  - dropping the port when it is the scheme default (443 https, 80 http)
  - stripping trailing slashes from the path
"""

from __future__ import annotations

from urllib.parse import urlsplit

_DEFAULT_PORTS = {"https": 443, "http": 80}


def normalize_url(url: str) -> str:
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return url.rstrip("/").lower()

    if not parts.hostname:
        return url.rstrip("/").lower()

    scheme = parts.scheme.lower() or "https"
    host = parts.hostname.lower()
    if host.startswith("www."):
        host = host[4:]

    port_part = ""
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        port_part = f":{port}"

    return f"{scheme}://{host}{port_part}{parts.path.rstrip('/')}"


def urls_match(a: str, b: str) -> bool:
    return normalize_url(a) == normalize_url(b)


def strip_trailing_slash(url: str) -> str:
    return url.rstrip("/")
