"""Blocking execution of external image commands."""

from __future__ import annotations

import subprocess
import time
from typing import Callable, Optional, Sequence

from zxytiles.core.errors import TilerError
from zxytiles.logging import get_logger

LOGGER = get_logger(__name__)

TERMINATE_GRACE_SECONDS = 5.0


class TileCommandError(TilerError):
    """Raised when a tiling command exits with a non-zero code or cannot run."""

    def __init__(self, message: str, *, diagnostic: str = "", returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic or message
        self.returncode = returncode


class TileRunner:
    """Execute external commands and propagate failures with context.

    The runner blocks until the child exits, calling ``heartbeat`` every
    ``poll_interval`` seconds while it waits. A child that is still alive
    when the runner returns or raises (including on ``KeyboardInterrupt``)
    is terminated.
    """

    def __init__(
        self,
        *,
        dry_run: bool = False,
        poll_interval: float = 0.2,
        timeout_seconds: Optional[float] = None,
        heartbeat: Optional[Callable[[], None]] = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._dry_run = dry_run
        self._poll_interval = poll_interval
        self._timeout_seconds = timeout_seconds
        self._heartbeat = heartbeat

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def run(self, command: Sequence[str], *, description: str) -> None:
        LOGGER.info("tiling step", extra={"description": description, "command": " ".join(command)})
        if self._dry_run:
            return
        try:
            proc = subprocess.Popen(
                list(command),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise TileCommandError(
                f"Unable to start command: {command[0]}: {exc}",
                diagnostic=str(exc),
            ) from exc

        with proc:
            try:
                stdout, stderr = self._wait(proc, command)
            finally:
                _terminate(proc)

        if stdout:
            LOGGER.debug(stdout.strip())
        if stderr:
            LOGGER.debug(stderr.strip())
        if proc.returncode != 0:
            msg = f"Command failed with exit code {proc.returncode}: {' '.join(command)}"
            if stdout:
                msg += f"\n--- stdout ---\n{stdout}"
            if stderr:
                msg += f"\n--- stderr ---\n{stderr}"
            diagnostic = "\n".join(part for part in (stderr, stdout) if part)
            raise TileCommandError(msg, diagnostic=diagnostic, returncode=proc.returncode)

    def _wait(self, proc: subprocess.Popen, command: Sequence[str]) -> tuple[str, str]:
        started = time.monotonic()
        while True:
            try:
                return proc.communicate(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                pass
            if self._timeout_seconds is not None and time.monotonic() - started > self._timeout_seconds:
                raise TileCommandError(
                    f"Command timed out after {self._timeout_seconds}s: {' '.join(command)}",
                    diagnostic=f"timed out after {self._timeout_seconds}s",
                )
            if self._heartbeat is not None:
                self._heartbeat()


def _terminate(proc: subprocess.Popen) -> None:
    if proc.poll() is not None:
        return
    LOGGER.warning("terminating backend process", extra={"pid": proc.pid})
    proc.terminate()
    try:
        proc.wait(timeout=TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()
