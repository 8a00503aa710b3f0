"""Running external tools (RAHasher, DolphinTool) without blocking the event loop."""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


def find_executable(executable: str) -> str | None:
    """Return an absolute path for a tool given as a path or a name on PATH.

    Returns None if the tool cannot be found.
    """
    if Path(executable).is_file():
        return str(Path(executable).absolute())
    return shutil.which(executable)


@dataclass
class ProcessInvocation:
    """Result of running an external command once.

    Attributes:
        cmd: Command that was executed
        returncode: Exit code (-1 if the process timed out)
        stdout: Captured standard output
        stderr: Captured standard error
        duration_sec: Wall-clock time until exit or timeout
        timed_out: Whether the command was killed for exceeding its timeout
    """

    cmd: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_sec: float = 0.0
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def truncated_stderr(self, max_chars: int = 200) -> str:
        """Return truncated stderr for log messages."""
        if len(self.stderr) <= max_chars:
            return self.stderr
        return self.stderr[:max_chars] + f"... ({len(self.stderr)} total chars)"


class ProcessRunner(Protocol):
    """Something that can run a command and report how it went."""

    async def run(
        self,
        cmd: list[str],
        timeout: float | None = None,
        cwd: str | None = None,
    ) -> ProcessInvocation: ...


class AsyncioProcessRunner:
    """Runs commands as asyncio subprocesses.

    stdout and stderr are drained concurrently. On timeout the process is
    killed; a failed kill is logged but the invocation is still reported as
    timed out.
    """

    async def run(
        self,
        cmd: list[str],
        timeout: float | None = None,
        cwd: str | None = None,
    ) -> ProcessInvocation:
        start = time.monotonic()
        logger.debug("Executing: %s (timeout=%ss)", " ".join(cmd), timeout)

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Command timed out after %ss: %s", timeout, " ".join(cmd))
            await _kill(process, cmd)
            return ProcessInvocation(
                cmd=cmd,
                returncode=-1,
                duration_sec=round(time.monotonic() - start, 2),
                timed_out=True,
            )

        invocation = ProcessInvocation(
            cmd=cmd,
            returncode=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration_sec=round(time.monotonic() - start, 2),
        )
        logger.debug(
            "Command completed: rc=%s, duration=%.2fs",
            invocation.returncode,
            invocation.duration_sec,
        )
        return invocation


async def _kill(process: asyncio.subprocess.Process, cmd: list[str]) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
        await asyncio.wait_for(process.wait(), 5)
    except ProcessLookupError:
        pass  # exited between the timeout and the kill
    except (OSError, asyncio.TimeoutError) as e:
        logger.error("Failed to kill hanging process %s: %s", cmd[0], e)
