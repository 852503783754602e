# server/mock_redirect_site.py
# 로컬 테스트용 리다이렉트 사이트: uvicorn mock_redirect_site:app --port 9000
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

app = FastAPI(title="Mock Redirect Site")

_REDIRECT_STATUSES = {301, 302, 303, 307, 308}


@app.get("/", response_class=HTMLResponse)
def home():
    html = """
    <!doctype html><meta charset="utf-8">
    <h2>Redirect test links (local only)</h2>

    <h3>1) Short chain</h3>
    <a href="http://127.0.0.1:9000/short">/short → /r1 → /r2 → /landing</a><br><br>

    <h3>2) Many hops</h3>
    <a href="http://127.0.0.1:9000/chain/6">/chain/6 (6 redirects)</a><br><br>

    <h3>3) Loop</h3>
    <a href="http://127.0.0.1:9000/loop/a">/loop/a ↔ /loop/b</a><br><br>

    <h3>4) Never ends</h3>
    <a href="http://127.0.0.1:9000/forever/0">/forever/0 → /forever/1 → ...</a><br><br>

    <h3>5) Referrer-Policy on a redirect</h3>
    <a href="http://127.0.0.1:9000/redirect?to=/echo&policy=no-referrer">no-referrer → /echo</a><br>
    <a href="http://127.0.0.1:9000/redirect?to=/echo&policy=unsafe-url">unsafe-url → /echo</a><br><br>

    <h3>6) Error terminal</h3>
    <a href="http://127.0.0.1:9000/redirect?to=/status/404">→ 404</a><br>
    """
    return html


@app.get("/short")
def short():
    return RedirectResponse(url="/r1", status_code=302)


@app.get("/r1")
def r1():
    return RedirectResponse(url="/r2", status_code=302)


@app.get("/r2")
def r2():
    return RedirectResponse(url="/landing", status_code=302)


@app.get("/chain/{n}")
def chain(n: int):
    # n번 리다이렉트 후 /landing
    n = max(0, min(50, n))
    if n == 0:
        return RedirectResponse(url="/landing", status_code=302)
    return RedirectResponse(url=f"/chain/{n-1}", status_code=302)


@app.get("/forever/{n}")
def forever(n: int):
    return RedirectResponse(url=f"/forever/{n+1}", status_code=302)


@app.get("/loop/a")
def loop_a():
    return RedirectResponse(url="/loop/b", status_code=301)


@app.get("/loop/b")
def loop_b():
    return RedirectResponse(url="/loop/a", status_code=301)


@app.get("/redirect")
def redirect(to: str, status: int = 302, policy: Optional[str] = None):
    if status not in _REDIRECT_STATUSES:
        status = 302
    resp = RedirectResponse(url=to, status_code=status)
    if policy:
        resp.headers["Referrer-Policy"] = policy
    resp.headers["Set-Cookie"] = "sid=mock; Path=/"
    resp.headers["X-Mock-Hop"] = "redirect"
    return resp


@app.get("/no-location")
def no_location():
    # 3xx인데 Location이 없음
    return Response(status_code=302)


@app.get("/status/{code}")
def status(code: int):
    return Response(content=f"status {code}", status_code=code, media_type="text/plain")


@app.get("/echo")
def echo(request: Request):
    # 받은 요청 헤더를 그대로 돌려준다(Referer / Sec-Fetch-Site 확인용)
    return JSONResponse({k: v for k, v in request.headers.items()})


@app.get("/landing", response_class=HTMLResponse)
def landing():
    return "<!doctype html><meta charset='utf-8'><h2>Landing</h2>"


@app.get("/favicon.ico")
def favicon():
    return Response(status_code=204)
