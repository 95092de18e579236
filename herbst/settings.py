"""
会话启动设置，从环境变量读取。
"""

import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    api_url: str = "http://localhost:8080"
    themes_file: Optional[str] = None
    log_level: str = "INFO"
    request_timeout: float = 10.0


def load_settings() -> Settings:
    return Settings(
        api_url=os.getenv("HERBST_API_URL", "http://localhost:8080").rstrip("/"),
        themes_file=os.getenv("HERBST_THEMES_FILE") or None,
        log_level=os.getenv("HERBST_LOG_LEVEL", "INFO").upper(),
        request_timeout=float(os.getenv("HERBST_REQUEST_TIMEOUT", "10")),
    )
