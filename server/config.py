# server/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from browser_profiles import get_profile
from redirect_utils import MAX_REDIRECTS, REQUEST_TIMEOUT_SEC

ENV_PATH = Path(__file__).with_name(".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    browser_profile: str = "chrome-121-windows"
    request_timeout_sec: float = REQUEST_TIMEOUT_SEC
    max_redirects: int = MAX_REDIRECTS
    verify_tls: bool = True
    cors_allow_origins: str = "*"
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "Settings":
        # server/.env 우선 로드(이미 설정된 환경변수는 덮어쓰지 않음)
        load_dotenv(dotenv_path=ENV_PATH, override=False)

        profile = os.getenv("BROWSER_PROFILE", "chrome-121-windows").strip()
        try:
            get_profile(profile)
        except KeyError as e:
            raise ValueError(f"BROWSER_PROFILE: {e.args[0]}") from None

        return Settings(
            browser_profile=profile,
            request_timeout_sec=float(os.getenv("REQUEST_TIMEOUT_SEC", str(REQUEST_TIMEOUT_SEC))),
            max_redirects=int(os.getenv("MAX_REDIRECTS", str(MAX_REDIRECTS))),
            verify_tls=_env_bool("VERIFY_TLS", "true"),
            cors_allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").strip(),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )

    def cors_origins(self) -> List[str]:
        if self.cors_allow_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]
