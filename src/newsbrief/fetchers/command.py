"""Shell-pipeline fetcher.

Runs a configured pipeline (by default ``curl | strip-tags | ttok | llm``) and
returns its stdout as the raw summary. The pipeline depends on external tools
being installed and can be slow and costly, so the refresh cache in front of
it is what keeps it from running on every page load.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import time
from typing import TYPE_CHECKING

import structlog

from newsbrief.errors import ErrorCode, FetchError

if TYPE_CHECKING:
    from newsbrief.config import FetcherSettings

log = structlog.get_logger()

_STDERR_TAIL_CHARS = 2000


class CommandFetcher:
    def __init__(self, command: str, *, shell: str = "bash", timeout: float = 120.0) -> None:
        self._command = command
        self._shell = shell
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: FetcherSettings) -> CommandFetcher:
        return cls(
            settings.command,
            shell=settings.shell,
            timeout=settings.command_timeout_seconds,
        )

    async def fetch(self) -> str:
        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                self._shell,
                "-c",
                self._command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise FetchError(
                ErrorCode.COMMAND_FAILED,
                f"Could not start {self._shell!r}: {exc}",
                recoverable=False,
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError:
            await _kill(proc)
            log.warning("command_timeout", timeout_s=self._timeout, pid=proc.pid)
            raise FetchError(
                ErrorCode.COMMAND_TIMEOUT,
                f"Command did not finish within {self._timeout:g}s",
            ) from None
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        err_text = stderr.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise FetchError(
                ErrorCode.COMMAND_FAILED,
                f"Command exited with status {proc.returncode}\n"
                f"Stderr: {err_text[-_STDERR_TAIL_CHARS:]}",
            )

        out = stdout.decode("utf-8", errors="replace")
        if not out.strip():
            raise FetchError(ErrorCode.EMPTY_CONTENT, "Command produced no output")

        log.info(
            "command_completed",
            duration_s=round(time.monotonic() - started, 3),
            chars=len(out),
        )
        return out

    async def aclose(self) -> None:
        return None


async def _kill(proc: asyncio.subprocess.Process) -> None:
    # The shell runs in its own session; kill the whole pipeline, not just the shell.
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            os.killpg(proc.pid, signal.SIGKILL)
    await proc.wait()
