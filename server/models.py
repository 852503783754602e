# server/models.py
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, field_validator

from browser_profiles import PROFILES
from url_utils import is_absolute_http_url


@dataclass(frozen=True)
class Hop:
    url: str
    headers: Mapping[str, str]
    status_code: int

    def __post_init__(self):
        # read-only view over a private copy
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "headers": dict(self.headers), "statusCode": self.status_code}


@dataclass(frozen=True)
class RedirectChain:
    hops: Tuple[Hop, ...]
    final_url: str
    final_headers: Mapping[str, str]
    final_status_code: int

    def __post_init__(self):
        object.__setattr__(self, "hops", tuple(self.hops))
        object.__setattr__(self, "final_headers", MappingProxyType(dict(self.final_headers)))

    @classmethod
    def from_hops(cls, hops: Sequence[Hop]) -> "RedirectChain":
        if not hops:
            raise ValueError("a redirect chain needs at least one hop")
        last = hops[-1]
        return cls(
            hops=tuple(hops),
            final_url=last.url,
            final_headers=last.headers,
            final_status_code=last.status_code,
        )

    @property
    def redirect_count(self) -> int:
        return len(self.hops) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "redirectChain": [h.to_dict() for h in self.hops],
            "finalUrl": self.final_url,
            "finalHeaders": dict(self.final_headers),
            "finalStatusCode": self.final_status_code,
        }


class AnalyzeRequest(BaseModel):
    url: str
    referer: Optional[str] = None
    profile: Optional[str] = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not is_absolute_http_url(v):
            raise ValueError("Please enter a valid URL")
        return v

    @field_validator("referer")
    @classmethod
    def check_referer(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        if not v:
            return None
        if not is_absolute_http_url(v):
            raise ValueError("Referer must be an absolute URL")
        return v

    @field_validator("profile")
    @classmethod
    def check_profile(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        if not v:
            return None
        if v not in PROFILES:
            raise ValueError(f"Unknown browser profile: {v}")
        return v
