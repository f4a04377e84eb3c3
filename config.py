"""
Runtime configuration read from environment variables.

Services read these as ``config.NAME`` at call time, so tests (and admin
scripts) can override a value with a plain attribute assignment.
"""
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


APP_NAME = os.getenv("APP_NAME", "Caravan Tracker API")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./caravan.db")
API_LOG_PATH = os.getenv("API_LOG_PATH")  # None -> ./logs/api.log

# Location fan-out
LOCATION_UPDATE_INTERVAL_SECONDS = int(os.getenv("LOCATION_UPDATE_INTERVAL_SECONDS", "30"))
ONLINE_WINDOW_SECONDS = int(os.getenv("ONLINE_WINDOW_SECONDS", "300"))

# Messages
MESSAGE_PAGE_DEFAULT = int(os.getenv("MESSAGE_PAGE_DEFAULT", "50"))
MESSAGE_PAGE_MAX = int(os.getenv("MESSAGE_PAGE_MAX", "100"))

# SpacetimeDB location sidecar
SPACETIME_LOCATION_MIRROR_ENABLED = _env_bool("SPACETIME_LOCATION_MIRROR_ENABLED", False)
SPACETIME_CLI_PATH = os.getenv("SPACETIME_CLI_PATH", "spacetime")
SPACETIME_SERVER = os.getenv("SPACETIME_SERVER", "local")
SPACETIME_DATABASE = os.getenv("SPACETIME_DATABASE", "")
SPACETIME_ANONYMOUS = _env_bool("SPACETIME_ANONYMOUS", False)
SPACETIME_TIMEOUT_SECONDS = int(os.getenv("SPACETIME_TIMEOUT_SECONDS", "4"))

# Nominatim place labels
NOMINATIM_ENABLED = _env_bool("NOMINATIM_ENABLED", True)
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org/reverse")
NOMINATIM_TIMEOUT_SECONDS = float(os.getenv("NOMINATIM_TIMEOUT_SECONDS", "2.5"))
NOMINATIM_CACHE_MINUTES = int(os.getenv("NOMINATIM_CACHE_MINUTES", "90"))
NOMINATIM_ACCEPT_LANGUAGE = os.getenv("NOMINATIM_ACCEPT_LANGUAGE", "en")
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "CaravanTracker/1.0")

# Avatars
AVATAR_STORAGE_DIR = os.getenv("AVATAR_STORAGE_DIR", "storage")
AVATAR_PUBLIC_PREFIX = os.getenv("AVATAR_PUBLIC_PREFIX", "/storage")
AVATAR_MAX_BYTES = int(os.getenv("AVATAR_MAX_BYTES", str(5 * 1024 * 1024)))

# Names whose duplicate rows are collapsed on the roster (legacy no-phone joins)
LEGACY_DUPLICATE_NAMES = _env_list("LEGACY_DUPLICATE_NAMES")
