"""Temporary locations for archive extraction and disc conversion."""

import logging
import os
import shutil
import tempfile
import uuid

from django.conf import settings

logger = logging.getLogger(__name__)


def get_hash_temp_dir() -> str:
    """Get the base directory for hashing temp files.

    Creates the directory if it doesn't exist.

    Returns:
        Path to the hashing temp directory.
    """
    base = getattr(settings, "HASH_TEMP_DIR", None)
    if not base:
        base = os.path.join(tempfile.gettempdir(), "romprint")
    os.makedirs(base, exist_ok=True)
    return base


def new_temp_directory() -> str:
    """Create a uniquely named directory under the hashing temp dir.

    Names are random UUIDs so concurrent requests never share a directory.
    """
    path = os.path.join(get_hash_temp_dir(), uuid.uuid4().hex)
    os.makedirs(path)
    return path


def new_temp_file_path(suffix: str) -> str:
    """Return a uniquely named (not yet created) file path in the hashing temp dir."""
    return os.path.join(get_hash_temp_dir(), f"{uuid.uuid4()}{suffix}")


def cleanup_temp_directory(path: str | None) -> None:
    """Remove a temp directory reported in a HashResult. Missing paths are ignored."""
    if not path:
        return
    shutil.rmtree(path, ignore_errors=True)
    if os.path.exists(path):
        logger.warning("Could not fully remove temp directory %s", path)
