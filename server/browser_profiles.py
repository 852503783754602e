# server/browser_profiles.py
"""
Static browser fingerprints used for outbound requests.

Each profile bundles the request headers a given browser/OS/version sends on a
top-level navigation plus the TLS parameters used to approximate its
handshake. Profiles are looked up by name so new fingerprints can be added
here without touching the resolver.
"""
from __future__ import annotations

import ssl
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.ssl_ import create_urllib3_context


@dataclass(frozen=True)
class TLSParams:
    minimum_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2
    maximum_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_3
    # OpenSSL cipher string for TLS <= 1.2 (1.3 suites are not configurable here)
    ciphers: Optional[str] = None


@dataclass(frozen=True)
class BrowserProfile:
    name: str
    label: str
    # 순서 유지: 브라우저가 보내는 순서 그대로
    headers: Tuple[Tuple[str, str], ...]
    tls: TLSParams = field(default_factory=TLSParams)


CHROME_121_WINDOWS = BrowserProfile(
    name="chrome-121-windows",
    label="Chrome 121 on Windows",
    headers=(
        ("sec-ch-ua", '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"'),
        ("sec-ch-ua-mobile", "?0"),
        ("sec-ch-ua-platform", '"Windows"'),
        ("Upgrade-Insecure-Requests", "1"),
        (
            "User-Agent",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
        ),
        (
            "Accept",
            "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
        ),
        ("Sec-Fetch-Site", "none"),
        ("Sec-Fetch-Mode", "navigate"),
        ("Sec-Fetch-User", "?1"),
        ("Sec-Fetch-Dest", "document"),
        ("Accept-Encoding", "gzip, deflate, br"),
        ("Accept-Language", "en-US,en;q=0.9"),
    ),
    tls=TLSParams(
        ciphers=(
            "ECDHE-ECDSA-AES128-GCM-SHA256:ECDHE-RSA-AES128-GCM-SHA256:"
            "ECDHE-ECDSA-AES256-GCM-SHA384:ECDHE-RSA-AES256-GCM-SHA384:"
            "ECDHE-ECDSA-CHACHA20-POLY1305:ECDHE-RSA-CHACHA20-POLY1305:"
            "ECDHE-RSA-AES128-SHA:ECDHE-RSA-AES256-SHA:"
            "AES128-GCM-SHA256:AES256-GCM-SHA384:AES128-SHA:AES256-SHA"
        ),
    ),
)

FIREFOX_122_WINDOWS = BrowserProfile(
    name="firefox-122-windows",
    label="Firefox 122 on Windows",
    headers=(
        (
            "User-Agent",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
        ),
        (
            "Accept",
            "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
            "image/webp,*/*;q=0.8",
        ),
        ("Accept-Language", "en-US,en;q=0.5"),
        ("Accept-Encoding", "gzip, deflate, br"),
        ("Upgrade-Insecure-Requests", "1"),
        ("Sec-Fetch-Dest", "document"),
        ("Sec-Fetch-Mode", "navigate"),
        ("Sec-Fetch-Site", "none"),
        ("Sec-Fetch-User", "?1"),
    ),
    tls=TLSParams(
        ciphers=(
            "ECDHE-ECDSA-AES128-GCM-SHA256:ECDHE-RSA-AES128-GCM-SHA256:"
            "ECDHE-ECDSA-CHACHA20-POLY1305:ECDHE-RSA-CHACHA20-POLY1305:"
            "ECDHE-ECDSA-AES256-GCM-SHA384:ECDHE-RSA-AES256-GCM-SHA384:"
            "ECDHE-ECDSA-AES256-SHA:ECDHE-ECDSA-AES128-SHA:"
            "ECDHE-RSA-AES128-SHA:ECDHE-RSA-AES256-SHA:"
            "AES128-GCM-SHA256:AES256-GCM-SHA384:AES128-SHA:AES256-SHA"
        ),
    ),
)

PROFILES: Dict[str, BrowserProfile] = {
    p.name: p for p in (CHROME_121_WINDOWS, FIREFOX_122_WINDOWS)
}

DEFAULT_PROFILE = CHROME_121_WINDOWS


def get_profile(name: Optional[str]) -> BrowserProfile:
    if not name:
        return DEFAULT_PROFILE
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(
            f"unknown browser profile {name!r} (available: {', '.join(sorted(PROFILES))})"
        ) from None


def list_profiles() -> List[Dict[str, str]]:
    return [{"name": p.name, "label": p.label} for p in PROFILES.values()]


def build_ssl_context(tls: TLSParams) -> ssl.SSLContext:
    ctx = create_urllib3_context(ciphers=tls.ciphers)
    ctx.minimum_version = tls.minimum_version
    ctx.maximum_version = tls.maximum_version
    return ctx


class BrowserTLSAdapter(HTTPAdapter):
    """HTTPAdapter whose pool negotiates TLS with the profile's parameters."""

    def __init__(self, tls: TLSParams, **kwargs):
        self._tls = tls
        # No transport-level retries: a failed hop fails the resolution.
        kwargs.setdefault("max_retries", 0)
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["ssl_context"] = build_ssl_context(self._tls)
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args, **kwargs):
        kwargs["ssl_context"] = build_ssl_context(self._tls)
        return super().proxy_manager_for(*args, **kwargs)


def build_session(profile: BrowserProfile, verify: bool = True) -> requests.Session:
    """
    Session for one resolution. Default session headers are cleared so that
    only the headers the resolver computes go on the wire.
    """
    session = requests.Session()
    session.headers.clear()
    session.verify = verify

    adapter = BrowserTLSAdapter(profile.tls)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
