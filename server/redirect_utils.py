"""Server-side redirect resolution."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests

from browser_profiles import DEFAULT_PROFILE, BrowserProfile, build_session
from header_policy import initial_headers, next_headers, sanitize_headers
from models import Hop, RedirectChain

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 20
REQUEST_TIMEOUT_SEC = 30.0


class RedirectResolutionError(Exception):
    """Base class for failures that abort a resolution."""

    status_code = 500


class RedirectLoopError(RedirectResolutionError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Redirect loop detected: {url} was already visited")


class TooManyRedirectsError(RedirectResolutionError):
    def __init__(self, max_redirects: int):
        self.max_redirects = max_redirects
        super().__init__(f"Too many redirects (maximum {max_redirects})")


class InvalidRedirectError(RedirectResolutionError):
    """Upstream sent a Location header that cannot be resolved to a URL."""

    status_code = 502

    def __init__(self, url: str, location: str):
        self.url = url
        self.location = location
        super().__init__(f"Invalid redirect from {url}: cannot resolve Location {location!r}")


class TransportError(RedirectResolutionError):
    """DNS, connection, TLS or timeout failure while requesting a hop."""

    def __init__(self, url: str, cause: requests.RequestException):
        self.url = url
        self.cause = cause
        self.status_code = 504 if isinstance(cause, requests.Timeout) else 502
        super().__init__(f"Request to {url} failed: {cause}")


def resolve_redirect_chain(
    url: str,
    referer: Optional[str] = None,
    *,
    profile: Optional[BrowserProfile] = None,
    session: Optional[requests.Session] = None,
    timeout: float = REQUEST_TIMEOUT_SEC,
    max_redirects: int = MAX_REDIRECTS,
    verify: bool = True,
) -> RedirectChain:
    """
    Follow the redirect chain starting at `url` one hop at a time.

    Every response, including the terminal one, is recorded as a Hop. A
    response is terminal when its status is outside 3xx or it has no
    Location header; 4xx/5xx terminal responses are returned normally.

    Raises RedirectLoopError, TooManyRedirectsError, InvalidRedirectError or
    TransportError.
    Nothing is retried and no partial chain is returned on failure.
    """
    profile = profile or DEFAULT_PROFILE
    own_session = session is None
    if own_session:
        session = build_session(profile, verify=verify)

    try:
        return _walk(session, url, referer, profile, timeout, max_redirects)
    finally:
        if own_session:
            session.close()


def _walk(
    session: requests.Session,
    url: str,
    referer: Optional[str],
    profile: BrowserProfile,
    timeout: float,
    max_redirects: int,
) -> RedirectChain:
    hops: List[Hop] = []
    current = url
    headers = initial_headers(profile, url, referer)
    visited = {url}
    redirects = 0

    while redirects < max_redirects:
        response = _get_no_redirect(session, current, headers, timeout)
        try:
            status = response.status_code
            location = response.headers.get("Location")
            raw_headers = getattr(response.raw, "headers", None) or response.headers
            hops.append(Hop(url=current, headers=sanitize_headers(raw_headers), status_code=status))
        finally:
            response.close()

        logger.debug("hop %d: %s -> %s", redirects, current, status)

        if not (300 <= status < 400) or not location:
            return RedirectChain.from_hops(hops)

        try:
            next_url = urljoin(current, location)
        except ValueError:
            logger.warning("unparseable Location %r from %s", location, current)
            raise InvalidRedirectError(current, location) from None
        if next_url in visited:
            logger.warning("redirect loop at %s (started from %s)", next_url, url)
            raise RedirectLoopError(next_url)
        visited.add(next_url)

        headers = next_headers(headers, response.headers, current, next_url, referer)
        current = next_url
        redirects += 1

    logger.warning("gave up on %s after %d redirects", url, max_redirects)
    raise TooManyRedirectsError(max_redirects)


def _get_no_redirect(
    session: requests.Session,
    url: str,
    headers,
    timeout: float,
) -> requests.Response:
    try:
        return session.get(
            url,
            headers=dict(headers),
            timeout=timeout,
            allow_redirects=False,
            stream=True,
        )
    except requests.RequestException as exc:
        # Some failures (e.g. TooManyRedirects) still carry a 3xx response.
        response = exc.response
        if response is not None and 300 <= response.status_code < 400:
            return response
        logger.warning("request to %s failed: %s", url, exc)
        raise TransportError(url, exc) from exc
