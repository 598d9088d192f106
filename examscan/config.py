# examscan/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_GEMINI_FALLBACK_MODELS = (
    "gemini-2.5-pro",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
    "gemini-2.5-flash-lite",
    "gemini-1.5-pro",
    "gemini-1.5-flash",
)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v not in (None, "") else default


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    v = _env(name)
    if v is None:
        return default
    return tuple(s.strip() for s in v.split(",") if s.strip())


@dataclass(frozen=True)
class ScoringConfig:
    # Vision (Gemini)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_FALLBACK_MODELS: Tuple[str, ...] = DEFAULT_GEMINI_FALLBACK_MODELS
    GEMINI_TIMEOUT: float = 25.0

    # 학번 OCR
    STUDENT_NUMBER_OCR_ENGINE: str = "gemini"  # gemini | google | tesseract | auto

    # Pipeline
    BATCH_MAX_WORKERS: int = 5
    ENABLE_OPENCV_WARP: bool = True
    RASTER_DPI: int = 200
    SHEET_TEMPLATE_PATH: Optional[str] = None
    DEBUG_CROP_DIR: Optional[str] = None
    MAX_REGION_SCORE: int = 100

    # Stores
    JOB_STORE: str = "memory"  # memory | redis
    RESULT_STORE: str = "memory"  # memory | django

    # Redis (optional)
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    BATCH_STATUS_TTL_SECONDS: int = 86400

    @staticmethod
    def load() -> "ScoringConfig":
        return ScoringConfig(
            GEMINI_API_KEY=_env("GEMINI_API_KEY"),
            GEMINI_MODEL=_env("GEMINI_MODEL", "gemini-2.5-flash") or "gemini-2.5-flash",
            GEMINI_FALLBACK_MODELS=_env_list("GEMINI_FALLBACK_MODELS", DEFAULT_GEMINI_FALLBACK_MODELS),
            GEMINI_TIMEOUT=float(_env("GEMINI_TIMEOUT", "25") or "25"),

            STUDENT_NUMBER_OCR_ENGINE=(_env("STUDENT_NUMBER_OCR_ENGINE", "gemini") or "gemini").lower(),

            BATCH_MAX_WORKERS=int(_env("BATCH_MAX_WORKERS", "5") or "5"),
            ENABLE_OPENCV_WARP=_env_bool("ENABLE_OPENCV_WARP", True),
            RASTER_DPI=int(_env("RASTER_DPI", "200") or "200"),
            SHEET_TEMPLATE_PATH=_env("SHEET_TEMPLATE_PATH"),
            DEBUG_CROP_DIR=_env("DEBUG_CROP_DIR"),
            MAX_REGION_SCORE=int(_env("MAX_REGION_SCORE", "100") or "100"),

            JOB_STORE=(_env("JOB_STORE", "memory") or "memory").lower(),
            RESULT_STORE=(_env("RESULT_STORE", "memory") or "memory").lower(),

            REDIS_HOST=_env("REDIS_HOST"),
            REDIS_PORT=int(_env("REDIS_PORT", "6379") or "6379"),
            REDIS_PASSWORD=_env("REDIS_PASSWORD"),
            REDIS_DB=int(_env("REDIS_DB", "0") or "0"),
            BATCH_STATUS_TTL_SECONDS=int(_env("BATCH_STATUS_TTL_SECONDS", "86400") or "86400"),
        )
