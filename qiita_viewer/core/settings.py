from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    app_env: str
    qiita_base_url: str
    qiita_access_token: str
    qiita_timeout: float
    default_per_page: int
    cache_stale_seconds: float
    cache_gc_seconds: float
    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        def _i(name: str, default: str) -> int:
            return int(os.getenv(name, default).strip())

        def _f(name: str, default: str) -> float:
            return float(os.getenv(name, default).strip())

        return Settings(
            app_env=os.getenv("APP_ENV", "dev").strip(),
            qiita_base_url=os.getenv("QIITA_BASE_URL", "https://qiita.com/api/v2").strip().rstrip("/"),
            qiita_access_token=os.getenv("QIITA_ACCESS_TOKEN", "").strip(),
            qiita_timeout=_f("QIITA_TIMEOUT", "30"),
            default_per_page=_i("DEFAULT_PER_PAGE", "20"),
            cache_stale_seconds=_f("CACHE_STALE_SECONDS", "300"),
            cache_gc_seconds=_f("CACHE_GC_SECONDS", "600"),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )
