# server/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from browser_profiles import get_profile, list_profiles
from config import Settings
from models import AnalyzeRequest
from redirect_utils import RedirectResolutionError, resolve_redirect_chain

settings = Settings.from_env()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

logger.info(
    "[BOOT] profile=%s timeout=%.1fs max_redirects=%d verify_tls=%s",
    settings.browser_profile,
    settings.request_timeout_sec,
    settings.max_redirects,
    settings.verify_tls,
)

app = FastAPI(title="Redirect Analyzer API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        # pydantic은 "Value error, ..." 접두어를 붙인다
        message = str(errors[0].get("msg", message)).replace("Value error, ", "", 1)
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    # 405/404 등도 {"message"} 형태로 통일
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RedirectResolutionError)
async def resolution_error(request: Request, exc: RedirectResolutionError):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})


@app.get("/")
def root():
    return {"ok": True, "hint": "Use POST /api/analyze or GET /docs"}


@app.get("/api/profiles")
def profiles():
    return {"default": settings.browser_profile, "profiles": list_profiles()}


@app.post("/api/analyze")
def analyze(payload: AnalyzeRequest):
    profile = get_profile(payload.profile or settings.browser_profile)
    logger.info("analyze url=%s referer=%s profile=%s", payload.url, payload.referer, profile.name)

    chain = resolve_redirect_chain(
        payload.url,
        payload.referer,
        profile=profile,
        timeout=settings.request_timeout_sec,
        max_redirects=settings.max_redirects,
        verify=settings.verify_tls,
    )
    return chain.to_dict()
