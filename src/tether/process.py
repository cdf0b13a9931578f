"""
Process runner -- launch an external tool and capture its output.

The runner never interprets exit codes itself; callers decide whether a
non-zero exit is fatal by calling ``ProcessResult.check()``. Every
invocation is bounded by a wall-clock timeout after which the child is
killed.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .errors import ProcessFailed, ProcessTimeout, ProgramMissing

logger = logging.getLogger("tether.process")

DEFAULT_TIMEOUT = 60.0


@dataclass
class ProcessResult:
    """Captured output of one finished invocation."""

    program: str
    args: list[str]
    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def check(self) -> "ProcessResult":
        """Raise ProcessFailed on a non-zero exit, else return self."""
        if not self.ok:
            raise ProcessFailed(self.program, self.args, self.exit_code, self.stderr_text)
        return self


def resolve_program(name: str) -> Optional[str]:
    """Full path of ``name`` on PATH (honours PATHEXT on Windows)."""
    return shutil.which(name)


async def run(
    program: str,
    args: Sequence[str] = (),
    timeout: float = DEFAULT_TIMEOUT,
    env: Optional[Mapping[str, str]] = None,
    stdin_null: bool = True,
) -> ProcessResult:
    """Run ``program`` with ``args`` and capture stdout, stderr and exit code.

    Args:
        program: Executable name, resolved against PATH.
        args: Arguments, passed verbatim (no shell).
        timeout: Wall-clock budget in seconds.
        env: Extra environment variables merged over the current ones.
        stdin_null: Attach stdin to /dev/null so tools cannot prompt.

    Returns:
        ProcessResult for the finished child.

    Raises:
        ProgramMissing: ``program`` is not on PATH.
        ProcessTimeout: The child exceeded ``timeout`` and was killed.
    """
    executable = resolve_program(program)
    if executable is None:
        raise ProgramMissing(program)

    child_env = None
    if env:
        child_env = {**os.environ, **env}

    argv = list(args)
    logger.debug("exec: %s %s", program, " ".join(argv))
    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *argv,
            stdin=asyncio.subprocess.DEVNULL if stdin_null else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=child_env,
        )
    except OSError as exc:
        logger.warning("Could not start %s: %s", program, exc)
        raise ProcessFailed(program, argv, -1, str(exc)) from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        logger.warning("%s %s timed out after %gs", program, " ".join(argv), timeout)
        raise ProcessTimeout(program, argv, timeout) from None
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    return ProcessResult(
        program=program,
        args=argv,
        stdout=stdout or b"",
        stderr=stderr or b"",
        exit_code=proc.returncode if proc.returncode is not None else -1,
    )


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            return
        await proc.wait()
