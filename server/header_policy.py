# server/header_policy.py
"""
Header evolution between redirect hops.

Pure functions, no network I/O. The resolver calls `next_headers` after each
3xx response to derive the headers of the following request, and
`sanitize_headers` before recording a response's headers in a hop.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from requests.structures import CaseInsensitiveDict

from browser_profiles import BrowserProfile
from url_utils import host_of, is_secure_scheme, origin_of, origin_tuple

# Hop-by-hop transport headers plus credential-bearing ones.
EXCLUDED_HEADERS = frozenset(
    {
        "content-length",
        "content-encoding",
        "transfer-encoding",
        "connection",
        "host",
        "authorization",
        "cookie",
        "set-cookie",
    }
)

# Computed by the policy itself, never copied from a response (stricter than
# copying every other response header: a response cannot override them).
_POLICY_OWNED = frozenset({"referer", "sec-fetch-site", "referrer-policy", "location"})


class SiteRelation(str, Enum):
    SAME_ORIGIN = "same-origin"
    SAME_SITE = "same-site"
    CROSS_SITE = "cross-site"


class ReferrerPolicy(str, Enum):
    NO_REFERRER = "no-referrer"
    NO_REFERRER_WHEN_DOWNGRADE = "no-referrer-when-downgrade"
    SAME_ORIGIN = "same-origin"
    ORIGIN = "origin"
    STRICT_ORIGIN = "strict-origin"
    ORIGIN_WHEN_CROSS_ORIGIN = "origin-when-cross-origin"
    STRICT_ORIGIN_WHEN_CROSS_ORIGIN = "strict-origin-when-cross-origin"
    UNSAFE_URL = "unsafe-url"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ReferrerPolicy":
        """
        Policy from a Referrer-Policy header value.

        The header may carry a comma-separated list; the last recognized token
        wins. Missing, empty or unrecognized values fall back to
        strict-origin-when-cross-origin.
        """
        policy = DEFAULT_REFERRER_POLICY
        for token in (value or "").split(","):
            token = token.strip().lower()
            try:
                policy = cls(token)
            except ValueError:
                continue
        return policy


DEFAULT_REFERRER_POLICY = ReferrerPolicy.STRICT_ORIGIN_WHEN_CROSS_ORIGIN


def classify_site(prev_url: str, next_url: str) -> SiteRelation:
    """
    Sec-Fetch-Site value for a request to next_url initiated from prev_url.

    Same-site is a hostname suffix check, not a public-suffix-list lookup, so
    e.g. notexample.com and example.com count as same-site.
    """
    a = host_of(prev_url)
    b = host_of(next_url)
    if not a or not b:
        return SiteRelation.CROSS_SITE
    if a == b:
        return SiteRelation.SAME_ORIGIN
    if a.endswith(b) or b.endswith(a):
        return SiteRelation.SAME_SITE
    return SiteRelation.CROSS_SITE


def _is_downgrade(current_url: str, target_url: str) -> bool:
    return is_secure_scheme(current_url) and not is_secure_scheme(target_url)


def _same_origin(current_url: str, target_url: str) -> bool:
    return origin_tuple(current_url) == origin_tuple(target_url)


def evaluate_referrer_policy(
    policy: ReferrerPolicy | str | None,
    current_url: str,
    target_url: str,
    referrer: str,
) -> Optional[str]:
    """
    Referer value to send to target_url, or None to omit the header.

    Downgrade and same-origin checks compare current_url (the URL whose
    response issued the redirect) with target_url; the value sent is derived
    from `referrer`.
    """
    if not isinstance(policy, ReferrerPolicy):
        policy = ReferrerPolicy.parse(policy)

    if policy is ReferrerPolicy.NO_REFERRER:
        return None

    if policy is ReferrerPolicy.NO_REFERRER_WHEN_DOWNGRADE:
        return None if _is_downgrade(current_url, target_url) else referrer

    if policy is ReferrerPolicy.SAME_ORIGIN:
        return referrer if _same_origin(current_url, target_url) else None

    if policy is ReferrerPolicy.ORIGIN:
        return origin_of(referrer)

    if policy is ReferrerPolicy.STRICT_ORIGIN:
        return None if _is_downgrade(current_url, target_url) else origin_of(referrer)

    if policy is ReferrerPolicy.ORIGIN_WHEN_CROSS_ORIGIN:
        if _same_origin(current_url, target_url):
            return referrer
        return origin_of(referrer)

    if policy is ReferrerPolicy.STRICT_ORIGIN_WHEN_CROSS_ORIGIN:
        if _same_origin(current_url, target_url):
            return referrer
        if _is_downgrade(current_url, target_url):
            return None
        return origin_of(referrer)

    if policy is ReferrerPolicy.UNSAFE_URL:
        return referrer

    raise AssertionError(f"unhandled referrer policy {policy!r}")


def initial_headers(
    profile: BrowserProfile, start_url: str, referer: Optional[str] = None
) -> CaseInsensitiveDict:
    """Headers for the first request of a resolution."""
    headers = CaseInsensitiveDict(profile.headers)
    if referer:
        headers["Referer"] = referer
        if host_of(referer) == host_of(start_url):
            headers["Sec-Fetch-Site"] = SiteRelation.SAME_ORIGIN.value
        else:
            headers["Sec-Fetch-Site"] = SiteRelation.CROSS_SITE.value
    return headers


def next_headers(
    prev: Mapping[str, str],
    response_headers: Mapping[str, Any],
    current_url: str,
    next_url: str,
    original_referer: Optional[str] = None,
) -> CaseInsensitiveDict:
    """
    Outgoing headers for the request to next_url, derived from the headers
    sent to current_url and the redirect response it returned.
    """
    out = CaseInsensitiveDict(
        (k, v) for k, v in prev.items() if k.lower() not in EXCLUDED_HEADERS
    )
    response = CaseInsensitiveDict(response_headers)

    policy = ReferrerPolicy.parse(response.get("Referrer-Policy"))
    referer = evaluate_referrer_policy(
        policy, current_url, next_url, original_referer or current_url
    )
    if referer is None:
        out.pop("Referer", None)
    else:
        out["Referer"] = referer

    out["Sec-Fetch-Site"] = classify_site(current_url, next_url).value

    for name, value in response.items():
        key = name.lower()
        if key in EXCLUDED_HEADERS or key in _POLICY_OWNED:
            continue
        out[name] = _join(value)
    return out


def _join(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def sanitize_headers(raw: Any) -> Dict[str, str]:
    """
    Recorded form of a response's headers: excluded names dropped, names
    lower-cased, repeated or list values joined with ", ".

    Accepts a plain mapping, a CaseInsensitiveDict, or a urllib3
    HTTPHeaderDict (whose repeated fields are read via getlist).
    """
    out: Dict[str, str] = {}
    getlist = getattr(raw, "getlist", None)
    for name in raw.keys():
        key = name.lower()
        if key in EXCLUDED_HEADERS:
            continue
        if getlist is not None:
            value = getlist(name)
        else:
            value = raw[name]
        value = _join(value)
        if key in out and out[key] != value:
            out[key] = f"{out[key]}, {value}"
        else:
            out[key] = value
    return out
