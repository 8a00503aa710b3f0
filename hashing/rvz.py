"""RVZ (Dolphin compressed GameCube/Wii disc) utilities.

RAHasher can't read RVZ images, so GameCube games stored as .rvz are
converted to a temporary ISO first and the ISO is hashed instead.

Requires: DolphinTool (dolphin-tool on Linux, from the Dolphin emulator)
"""

import logging
from pathlib import Path

from django.conf import settings

from .process import AsyncioProcessRunner, ProcessRunner, find_executable
from .temp import new_temp_file_path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 900  # seconds; a full disc conversion can take minutes


def get_dolphin_tool_path() -> str:
    return getattr(settings, "DOLPHIN_TOOL_PATH", "dolphin-tool")


def is_dolphin_tool_available() -> bool:
    """Check if DolphinTool is available on the system."""
    return find_executable(get_dolphin_tool_path()) is not None


def is_rvz_file(filename: str | Path) -> bool:
    """Check if a file is an RVZ image based on extension."""
    return str(filename).lower().endswith(".rvz")


async def convert_rvz_to_iso(
    rvz_path: str,
    runner: ProcessRunner | None = None,
    tool_path: str | None = None,
) -> str | None:
    """Convert an RVZ image to a temporary ISO with DolphinTool.

    The caller owns the returned file and must delete it.

    Args:
        rvz_path: Path to the .rvz file
        runner: Process runner (defaults to asyncio subprocesses)
        tool_path: DolphinTool path (defaults to settings.DOLPHIN_TOOL_PATH)

    Returns:
        Path to the converted ISO, or None if conversion failed
    """
    executable = find_executable(tool_path or get_dolphin_tool_path())
    if executable is None:
        logger.warning("DolphinTool not available, cannot convert %s", rvz_path)
        return None

    runner = runner or AsyncioProcessRunner()
    output_path = Path(new_temp_file_path(".iso"))
    cmd = [
        executable,
        "convert",
        "--format=iso",
        f"--input={Path(rvz_path).absolute()}",
        f"--output={output_path}",
    ]

    try:
        invocation = await runner.run(
            cmd,
            timeout=getattr(settings, "DOLPHIN_TOOL_TIMEOUT", DEFAULT_TIMEOUT),
            cwd=str(Path(executable).parent),
        )
    except OSError as e:
        logger.warning("Could not start DolphinTool for %s: %s", rvz_path, e)
        return None

    if invocation.returncode == 0 and not invocation.timed_out and output_path.exists():
        logger.debug("Converted %s to %s", rvz_path, output_path)
        return str(output_path)

    logger.warning(
        "DolphinTool failed for %s: rc=%s, timed_out=%s, stderr: %s",
        rvz_path,
        invocation.returncode,
        invocation.timed_out,
        invocation.truncated_stderr(),
    )
    # Don't leave a half-written ISO behind
    output_path.unlink(missing_ok=True)
    return None
