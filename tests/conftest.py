import io

import pytest
import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from browser_profiles import DEFAULT_PROFILE, build_session
from mock_redirect_site import app as mock_site


class ASGIAdapter(BaseAdapter):
    """
    requests transport that hands every request to an ASGI app through
    TestClient, so the resolver runs unchanged without opening sockets.
    Sent requests are kept in `sent` for header assertions.
    """

    def __init__(self, app):
        super().__init__()
        self.client = TestClient(app, follow_redirects=False)
        self.sent = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        r = self.client.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            follow_redirects=False,
        )
        self.client.cookies.clear()

        resp = requests.Response()
        resp.status_code = r.status_code
        resp.reason = r.reason_phrase
        resp.headers = CaseInsensitiveDict(r.headers.items())
        resp._content = r.content
        resp.raw = io.BytesIO(r.content)
        resp.url = request.url
        resp.request = request
        resp.encoding = r.encoding
        return resp

    def close(self):
        self.client.close()


@pytest.fixture
def site_adapter():
    return ASGIAdapter(mock_site)


@pytest.fixture
def site_session(site_adapter):
    session = build_session(DEFAULT_PROFILE)
    session.mount("http://", site_adapter)
    session.mount("https://", site_adapter)
    yield session
    session.close()
