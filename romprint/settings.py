"""
Django settings for romprint.

Tool locations and timeouts can be overridden with ROMPRINT_* environment
variables.
"""

import os
import shutil
import tempfile
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("ROMPRINT_SECRET_KEY", "romprint-insecure-dev-key")

DEBUG = os.environ.get("ROMPRINT_DEBUG", "false").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    "hashing",
]

DATABASES = {}

USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


def _find_tool(env_var: str, names: list[str], fallback: Path) -> str:
    """Resolve a tool path from an env override, PATH, or the bundled tools dir."""
    override = os.environ.get(env_var)
    if override:
        return override
    for name in names:
        found = shutil.which(name)
        if found:
            return found
    return str(fallback)


# -----------------------------------------------------------------------------
# External tools
# -----------------------------------------------------------------------------

RAHASHER_PATH = _find_tool(
    "ROMPRINT_RAHASHER_PATH",
    ["RAHasher", "rahasher"],
    BASE_DIR / "tools" / "RAHasher" / "RAHasher",
)
RAHASHER_TIMEOUT = int(os.environ.get("ROMPRINT_RAHASHER_TIMEOUT", "20"))

DOLPHIN_TOOL_PATH = _find_tool(
    "ROMPRINT_DOLPHIN_TOOL_PATH",
    ["dolphin-tool", "DolphinTool"],
    BASE_DIR / "tools" / "DolphinTool" / "DolphinTool",
)
DOLPHIN_TOOL_TIMEOUT = int(os.environ.get("ROMPRINT_DOLPHIN_TOOL_TIMEOUT", "900"))

# Archive extractions and converted disc images are written here
HASH_TEMP_DIR = os.environ.get("ROMPRINT_TEMP_DIR", tempfile.gettempdir())

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------

LOG_LEVEL = os.environ.get("ROMPRINT_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "hashing": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": True,
        },
    },
}
