from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://be-2-report.vercel.app"
DEFAULT_TOKEN_PATH = Path.home() / ".commission-reports" / "token.json"
TOKEN_KEY = "jwt_token"
PAGE_SIZE = 50


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _list_env(name: str, default: List[str]) -> List[str]:
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 20.0
    token_path: Path = DEFAULT_TOKEN_PATH
    page_size: int = PAGE_SIZE
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])


def load_settings() -> Settings:
    """Read settings from the environment (a local .env file is honoured)."""
    return Settings(
        base_url=os.environ.get("REPORT_API_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        timeout=_float_env("REPORT_API_TIMEOUT", 20.0),
        token_path=Path(os.environ.get("REPORT_TOKEN_PATH", str(DEFAULT_TOKEN_PATH))),
        page_size=max(1, _int_env("REPORT_PAGE_SIZE", PAGE_SIZE)),
        cors_origins=_list_env("REPORT_CORS_ORIGINS", ["http://localhost:3000", "http://127.0.0.1:3000"]),
    )
