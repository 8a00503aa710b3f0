"""RAHasher adapter.

RAHasher is RetroAchievements' reference hashing tool. It is the only
reliable way to hash disc-based platforms (PlayStation, Saturn, Sega CD...)
and reads their archives and multi-track images itself.

Usage: ``RAHasher <console_id> <file>``. The hash is printed on its own line,
possibly surrounded by diagnostics. RAHasher sometimes exits non-zero after
printing a valid hash, so the output is always searched before the exit code
is looked at.
"""

import logging
import re
from pathlib import Path

from django.conf import settings

from .process import (
    AsyncioProcessRunner,
    ProcessInvocation,
    ProcessRunner,
    find_executable,
)
from .results import ErrorKind, HashResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20  # seconds

HASH_TOKEN_PATTERN = re.compile(r"^[0-9a-fA-F]{32}$")


def get_rahasher_path() -> str:
    return getattr(settings, "RAHASHER_PATH", "RAHasher")


def is_rahasher_available() -> bool:
    """Check if the configured RAHasher executable exists."""
    return find_executable(get_rahasher_path()) is not None


def find_hash_in_output(output: str) -> str | None:
    """Pull the first 32-character hex token out of RAHasher's stdout.

    Args:
        output: Captured standard output

    Returns:
        Lower-cased hash, or None if no line carries one

    Example:
        >>> find_hash_in_output("Hashing game.cue\\nABCDEF0123456789ABCDEF0123456789\\n")
        'abcdef0123456789abcdef0123456789'
    """
    for line in output.splitlines():
        for token in line.split():
            if HASH_TOKEN_PATTERN.match(token):
                return token.lower()
    return None


def _describe_output(invocation: ProcessInvocation) -> str:
    return f"Stderr: {invocation.stderr.strip()} Stdout: {invocation.stdout.strip()}"


def interpret_invocation(invocation: ProcessInvocation) -> HashResult:
    """Turn a finished RAHasher run into a HashResult.

    A hash found in stdout wins regardless of the exit code.
    """
    if invocation.timed_out:
        return HashResult.failure(
            ErrorKind.EXTERNAL_TOOL_TIMEOUT,
            f"RAHasher timed out after {invocation.duration_sec}s.",
        )

    hash_value = find_hash_in_output(invocation.stdout)
    if hash_value:
        if invocation.returncode != 0:
            logger.debug(
                "RAHasher exited with %s but printed hash %s",
                invocation.returncode,
                hash_value,
            )
        return HashResult.ok(hash_value)

    if invocation.returncode != 0:
        return HashResult.failure(
            ErrorKind.EXTERNAL_TOOL_FAILURE,
            f"RAHasher failed with exit code {invocation.returncode}. "
            f"{_describe_output(invocation)}",
        )

    return HashResult.failure(
        ErrorKind.UNPARSEABLE_OUTPUT,
        f"Could not parse a hash from RAHasher output. {_describe_output(invocation)}",
    )


class RAHasher:
    """Invokes RAHasher for a console ID and file.

    Args:
        runner: Process runner (defaults to asyncio subprocesses)
        executable: RAHasher path (defaults to settings.RAHASHER_PATH)
        timeout: Seconds to wait (defaults to settings.RAHASHER_TIMEOUT)
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        executable: str | None = None,
        timeout: float | None = None,
    ):
        self.runner = runner or AsyncioProcessRunner()
        self.executable = executable or get_rahasher_path()
        if timeout is None:
            timeout = getattr(settings, "RAHASHER_TIMEOUT", DEFAULT_TIMEOUT)
        self.timeout = timeout

    async def invoke(self, catalog_id: int, file_path: str) -> HashResult:
        """Hash ``file_path`` as RetroAchievements console ``catalog_id``."""
        executable = find_executable(self.executable)
        if executable is None:
            logger.warning("RAHasher not found at %s", self.executable)
            return HashResult.failure(
                ErrorKind.EXTERNAL_TOOL_FAILURE,
                f"RAHasher not found at {self.executable}.",
            )

        if not Path(file_path).is_file():
            return HashResult.failure(
                ErrorKind.FILE_NOT_FOUND, f"File to hash not found: {file_path}"
            )

        cmd = [executable, str(catalog_id), str(Path(file_path).absolute())]
        try:
            invocation = await self.runner.run(
                cmd,
                timeout=self.timeout,
                cwd=str(Path(executable).parent),
            )
        except OSError as e:
            logger.warning("Could not start RAHasher for %s: %s", file_path, e)
            return HashResult.failure(
                ErrorKind.EXTERNAL_TOOL_FAILURE, f"Could not start RAHasher: {e}"
            )

        result = interpret_invocation(invocation)
        if result.success:
            logger.debug(
                "RAHasher hash for '%s' (console %s): %s",
                Path(file_path).name,
                catalog_id,
                result.hash,
            )
        else:
            logger.warning(
                "RAHasher failed for %s (console %s): %s",
                file_path,
                catalog_id,
                result.error_message,
            )
        return result
