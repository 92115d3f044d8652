"""Runtime settings read from the environment (load_dotenv runs in main before import)."""
from __future__ import annotations

import os
from pathlib import Path


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    return int(_float_env(name, float(default)))


BACKEND_DIR = Path(__file__).resolve().parent

VALUATION_API_URL = (os.getenv("VALUATION_API_URL") or "http://localhost:5000/api").rstrip("/")
VALUATION_API_RESOURCE = (os.getenv("VALUATION_API_RESOURCE") or "bof-maharashtra").strip("/")
VALUATION_API_TOKEN = (os.getenv("VALUATION_API_TOKEN") or "").strip()
VALUATION_API_TIMEOUT_S = _float_env("VALUATION_API_TIMEOUT_S", 30.0)
GATEWAY_CACHE_TTL_S = _float_env("GATEWAY_CACHE_TTL_S", 600.0)

IMAGE_LOAD_TIMEOUT_S = _float_env("IMAGE_LOAD_TIMEOUT_S", 5.0)
IMAGE_MAX_WIDTH_PX = _int_env("IMAGE_MAX_WIDTH_PX", 1200)
IMAGE_JPEG_QUALITY = _int_env("IMAGE_JPEG_QUALITY", 70)

RASTER_SCALE = _float_env("RASTER_SCALE", 1.5)
RASTER_VIEWPORT_WIDTH_PX = _int_env("RASTER_VIEWPORT_WIDTH_PX", 793)

PREVIEW_DIR = Path(os.getenv("PREVIEW_DIR") or (BACKEND_DIR / "previews"))
PREVIEW_TTL_S = _float_env("PREVIEW_TTL_S", 3600.0)

ALLOWED_ORIGINS = [
    o.strip()
    for o in (os.getenv("ALLOWED_ORIGINS") or "http://localhost:3000").split(",")
    if o.strip()
]
DEFAULT_VALUER_ID = (os.getenv("DEFAULT_VALUER_ID") or "default").strip() or "default"
