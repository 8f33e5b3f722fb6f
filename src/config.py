import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [p.strip().lower() for p in raw.split(",") if p.strip()]


HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 5000)

# JSON list of URLs or {"name", "url"} objects; unset -> hardcoded fallback
EXTERNAL_SOURCES = os.getenv("EXTERNAL_SOURCES")

CACHE_TTL_SECONDS = _env_int("CACHE_TTL_SECONDS", 24 * 60 * 60)
REFRESH_CRON = os.getenv("REFRESH_CRON", "0 0 * * *")
REFRESH_TIMEZONE = os.getenv("REFRESH_TIMEZONE") or None
REFRESH_MAX_WORKERS = max(1, _env_int("REFRESH_MAX_WORKERS", 1))

HTTP_TIMEOUT_SECONDS = _env_int("HTTP_TIMEOUT_SECONDS", 10)
RENDER_TIMEOUT_SECONDS = _env_int("RENDER_TIMEOUT_SECONDS", 30)

# Hosts that reject simple clients; these go through the headless browser
BLOCKED_URL_PATTERNS = _env_list("BLOCKED_URL_PATTERNS", "ontario.ca,ontariocourts.ca")

RATE_LIMIT_WINDOW_SECONDS = _env_int("RATE_LIMIT_WINDOW_SECONDS", 15 * 60)
RATE_LIMIT_MAX = _env_int("RATE_LIMIT_MAX", 100)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
