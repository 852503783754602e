import io
from unittest.mock import Mock, patch

import pytest
import requests
from requests.structures import CaseInsensitiveDict

import redirect_utils
from redirect_utils import (
    MAX_REDIRECTS,
    InvalidRedirectError,
    RedirectLoopError,
    TooManyRedirectsError,
    TransportError,
    resolve_redirect_chain,
)

SITE = "http://mock.test"


def _response(status, headers=None, url="http://x.test/"):
    resp = requests.Response()
    resp.status_code = status
    resp.headers = CaseInsensitiveDict(headers or {})
    resp._content = b""
    resp.raw = io.BytesIO(b"")
    resp.url = url
    return resp


def _assert_final_matches_last(chain):
    last = chain.hops[-1]
    assert (chain.final_url, chain.final_status_code) == (last.url, last.status_code)
    assert chain.final_headers == last.headers


def test_immediate_200_is_single_hop(site_session):
    chain = resolve_redirect_chain(f"{SITE}/landing", session=site_session)
    assert len(chain.hops) == 1
    assert chain.hops[0].url == f"{SITE}/landing"
    assert chain.hops[0].status_code == 200
    assert chain.redirect_count == 0
    _assert_final_matches_last(chain)


def test_follows_relative_redirects(site_session):
    chain = resolve_redirect_chain(f"{SITE}/short", session=site_session)
    assert [h.url for h in chain.hops] == [
        f"{SITE}/short",
        f"{SITE}/r1",
        f"{SITE}/r2",
        f"{SITE}/landing",
    ]
    assert [h.status_code for h in chain.hops] == [302, 302, 302, 200]
    assert chain.hops[0].headers["location"] == "/r1"
    _assert_final_matches_last(chain)


def test_two_node_cycle_is_a_loop_error(site_session, site_adapter):
    with pytest.raises(RedirectLoopError) as ei:
        resolve_redirect_chain(f"{SITE}/loop/a", session=site_session)
    assert "loop" in str(ei.value).lower()
    assert ei.value.url == f"{SITE}/loop/a"
    assert len(site_adapter.sent) == 2


def test_always_redirecting_server_hits_budget(site_session, site_adapter):
    with pytest.raises(TooManyRedirectsError) as ei:
        resolve_redirect_chain(f"{SITE}/forever/0", session=site_session)
    assert str(MAX_REDIRECTS) in str(ei.value)
    assert ei.value.max_redirects == 20
    # the 21st request is never sent
    assert len(site_adapter.sent) == MAX_REDIRECTS


def test_budget_counts_redirect_hops(site_session):
    # /chain/3 -> 2 -> 1 -> 0 -> /landing is four redirects
    chain = resolve_redirect_chain(f"{SITE}/chain/3", session=site_session, max_redirects=5)
    assert len(chain.hops) == 5
    assert chain.final_url == f"{SITE}/landing"

    with pytest.raises(TooManyRedirectsError):
        resolve_redirect_chain(f"{SITE}/chain/3", session=site_session, max_redirects=4)


def test_error_status_is_a_valid_terminal_hop(site_session):
    chain = resolve_redirect_chain(f"{SITE}/redirect?to=/status/404", session=site_session)
    assert [h.status_code for h in chain.hops] == [302, 404]
    assert chain.final_status_code == 404
    _assert_final_matches_last(chain)


def test_redirect_without_location_is_terminal(site_session):
    chain = resolve_redirect_chain(f"{SITE}/no-location", session=site_session)
    assert len(chain.hops) == 1
    assert chain.final_status_code == 302


def test_credentials_never_recorded_or_sent(site_session, site_adapter):
    chain = resolve_redirect_chain(
        f"{SITE}/redirect?to=/redirect%3Fto%3D/landing", session=site_session
    )
    assert len(chain.hops) == 3
    assert chain.hops[0].headers["x-mock-hop"] == "redirect"
    for hop in chain.hops:
        assert "set-cookie" not in hop.headers
        assert "authorization" not in hop.headers
    for sent in site_adapter.sent:
        for name in ("set-cookie", "cookie", "authorization"):
            assert name not in sent.headers


def test_301_without_policy_uses_default_referer(site_session, site_adapter):
    start = f"{SITE}/redirect?to=/echo&status=301"
    chain = resolve_redirect_chain(start, session=site_session)
    assert [h.status_code for h in chain.hops] == [301, 200]

    first, second = site_adapter.sent
    assert "Referer" not in first.headers
    assert first.headers["Sec-Fetch-Site"] == "none"
    # same origin under strict-origin-when-cross-origin: full URL
    assert second.headers["Referer"] == start
    assert second.headers["Sec-Fetch-Site"] == "same-origin"


def test_cross_site_redirect_sends_origin_only(site_session, site_adapter):
    start = f"{SITE}/redirect?to=http://other.test/echo"
    resolve_redirect_chain(start, session=site_session)
    second = site_adapter.sent[1]
    assert second.url == "http://other.test/echo"
    assert second.headers["Referer"] == SITE
    assert second.headers["Sec-Fetch-Site"] == "cross-site"


def test_no_referrer_policy_drops_header(site_session, site_adapter):
    resolve_redirect_chain(
        f"{SITE}/redirect?to=/echo&policy=no-referrer",
        "https://search.test/results?q=1",
        session=site_session,
    )
    first, second = site_adapter.sent
    assert first.headers["Referer"] == "https://search.test/results?q=1"
    assert first.headers["Sec-Fetch-Site"] == "cross-site"
    assert "Referer" not in second.headers


def test_user_referer_is_evaluated_on_each_hop(site_session, site_adapter):
    resolve_redirect_chain(
        f"{SITE}/redirect?to=http://other.test/echo",
        "https://search.test/results?q=1",
        session=site_session,
    )
    assert site_adapter.sent[1].headers["Referer"] == "https://search.test"


def test_profile_headers_sent(site_session, site_adapter):
    resolve_redirect_chain(f"{SITE}/landing", session=site_session)
    sent = site_adapter.sent[0]
    assert "Chrome/121" in sent.headers["User-Agent"]
    assert sent.headers["sec-ch-ua-platform"] == '"Windows"'


def test_redirect_surfaced_as_exception_is_followed():
    session = Mock()
    redirect = _response(302, {"Location": "/next"})
    session.get.side_effect = [
        requests.TooManyRedirects("Exceeded 0 redirects.", response=redirect),
        _response(200, {"Content-Type": "text/html"}),
    ]
    chain = resolve_redirect_chain("https://x.test/start", session=session)
    assert [(h.url, h.status_code) for h in chain.hops] == [
        ("https://x.test/start", 302),
        ("https://x.test/next", 200),
    ]
    assert session.get.call_args.kwargs["allow_redirects"] is False


@pytest.mark.parametrize(
    "exc,status",
    [
        (requests.ConnectionError("refused"), 502),
        (requests.ConnectTimeout("slow"), 504),
        (requests.ReadTimeout("slow"), 504),
    ],
)
def test_transport_failure_aborts(exc, status):
    session = Mock()
    session.get.side_effect = [_response(301, {"Location": "https://y.test/"}), exc]
    with pytest.raises(TransportError) as ei:
        resolve_redirect_chain("https://x.test/", session=session)
    assert ei.value.status_code == status
    assert ei.value.url == "https://y.test/"
    assert ei.value.cause is exc
    assert session.get.call_count == 2


def test_error_response_on_exception_is_not_unwrapped():
    session = Mock()
    session.get.side_effect = requests.HTTPError("boom", response=_response(500))
    with pytest.raises(TransportError):
        resolve_redirect_chain("https://x.test/", session=session)


def test_unparseable_location_is_a_classified_error():
    session = Mock()
    session.get.return_value = _response(302, {"Location": "http://[::1/x"})
    with pytest.raises(InvalidRedirectError) as ei:
        resolve_redirect_chain("https://x.test/", session=session)
    assert ei.value.status_code == 502
    assert ei.value.location == "http://[::1/x"
    assert "http://[::1/x" in str(ei.value)
    assert session.get.call_count == 1


def test_recorded_hop_headers_are_read_only(site_session):
    chain = resolve_redirect_chain(f"{SITE}/short", session=site_session)
    with pytest.raises(TypeError):
        chain.hops[0].headers["location"] = "/elsewhere"
    with pytest.raises(TypeError):
        chain.final_headers["x-new"] = "1"
    assert chain.hops[0].to_dict()["headers"]["location"] == "/r1"


def test_own_session_is_closed(site_session):
    with patch.object(redirect_utils, "build_session", return_value=site_session) as build, \
            patch.object(site_session, "close", wraps=site_session.close) as close:
        resolve_redirect_chain(f"{SITE}/landing", timeout=5, verify=False)
    build.assert_called_once()
    assert build.call_args.kwargs["verify"] is False
    close.assert_called_once()


def test_injected_session_is_left_open():
    session = Mock()
    session.get.return_value = _response(200)
    resolve_redirect_chain("https://x.test/", session=session)
    session.close.assert_not_called()
    assert session.get.call_args.kwargs["timeout"] == 30.0
