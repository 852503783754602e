# server/url_utils.py
from __future__ import annotations

from urllib.parse import urlsplit

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}
_SECURE_SCHEMES = {"https", "wss"}


def host_of(url: str) -> str:
    """URL에서 hostname(소문자)만 뽑는다. 파싱 실패 시 빈 문자열."""
    try:
        return (urlsplit(url or "").hostname or "").lower()
    except ValueError:
        return ""


def scheme_of(url: str) -> str:
    return (urlsplit(url or "").scheme or "").lower()


def is_secure_scheme(url: str) -> bool:
    return scheme_of(url) in _SECURE_SCHEMES


def port_of(url: str) -> int | None:
    """Explicit port, or the scheme's default port when none is given."""
    sp = urlsplit(url or "")
    try:
        port = sp.port
    except ValueError:
        return None
    if port is None:
        return _DEFAULT_PORTS.get((sp.scheme or "").lower())
    return port


def origin_tuple(url: str) -> tuple[str, str, int | None]:
    return scheme_of(url), host_of(url), port_of(url)


def origin_of(url: str) -> str:
    """
    scheme://host[:port] 형태의 origin 문자열.
    기본 포트(80/443)는 생략한다.
    """
    sp = urlsplit(url or "")
    scheme = (sp.scheme or "").lower()
    host = (sp.hostname or "").lower()
    if ":" in host:
        # IPv6 literal
        host = f"[{host}]"

    try:
        port = sp.port
    except ValueError:
        port = None

    origin = f"{scheme}://{host}"
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        origin += f":{port}"
    return origin


def is_absolute_http_url(url: str) -> bool:
    """http(s) scheme + host가 모두 있는 절대 URL인지."""
    try:
        sp = urlsplit(url or "")
        # port 범위 검사(잘못된 포트면 ValueError)
        sp.port
    except ValueError:
        return False
    return (sp.scheme or "").lower() in ("http", "https") and bool(sp.hostname)
