"""Runs the klog executable as a subprocess and collects its output."""

from __future__ import annotations

import asyncio
import logging
import shutil

logger = logging.getLogger("klogls.invoker")

JSON_COMMAND = "json"
VERSION_COMMAND = "version"


class ValidatorInvocationError(Exception):
    """Base class for failures to obtain output from the validator."""

    def __init__(self, executable: str, message: str) -> None:
        super().__init__(message)
        self.executable = executable


class ValidatorNotFoundError(ValidatorInvocationError):
    """The executable does not exist or is not executable."""


class ValidatorSpawnError(ValidatorInvocationError):
    """The operating system refused to start the executable."""


class ValidatorTimeoutError(ValidatorInvocationError):
    """The executable did not close its output in time and was killed."""


def find_executable(path: str) -> str | None:
    """Return the runnable location of *path*, or ``None``.

    Accepts absolute and relative paths as well as bare command names
    looked up on ``PATH``.
    """
    if not path.strip():
        return None
    return shutil.which(path)


async def run_command(
    executable: str,
    args: list[str],
    stdin_text: str | None,
    timeout: float | None,
) -> str:
    """Run ``executable *args`` once and return everything it wrote to stdout.

    *stdin_text* is written in one piece and the stream is closed; stdout is
    read until EOF regardless of how many chunks it arrives in.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise ValidatorNotFoundError(executable, f"klog not found at '{executable}'") from exc
    except PermissionError as exc:
        raise ValidatorNotFoundError(
            executable, f"klog at '{executable}' is not executable"
        ) from exc
    except OSError as exc:
        raise ValidatorSpawnError(
            executable, f"Could not start klog at '{executable}': {exc.strerror or exc}"
        ) from exc

    data = stdin_text.encode("utf-8", errors="replace") if stdin_text is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(data), timeout)
    except TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise ValidatorTimeoutError(
            executable, f"klog at '{executable}' did not respond within {timeout:g}s"
        ) from exc

    logger.debug(
        "%s %s exited with %s (%d bytes stdout)",
        executable,
        " ".join(args),
        proc.returncode,
        len(stdout),
    )
    if stderr:
        logger.debug("klog stderr: %s", stderr.decode("utf-8", errors="replace").strip())
    return stdout.decode("utf-8", errors="replace")


async def run_validator(executable: str, text: str, timeout: float | None = None) -> str:
    """Feed *text* to ``klog json`` and return the raw JSON it prints."""
    return await run_command(executable, [JSON_COMMAND], text, timeout)
