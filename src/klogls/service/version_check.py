"""Compatibility check of the klog executable's version."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass

from klogls.service.invoker import VERSION_COMMAND, run_command

Version = tuple[int, int, int]

_VERSION_RE = re.compile(r"\bv?(\d+)\.(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class VersionRule:
    """Supported versions on one platform family.

    ``incompatible`` holds half-open ``[low, high)`` ranges.
    """

    minimum: Version
    incompatible: tuple[tuple[Version, Version], ...] = ()


# Reading the log from stdin with ``json`` arrived later on Windows.
_RULES: dict[str, VersionRule] = {
    "posix": VersionRule(minimum=(2, 2, 0)),
    "windows": VersionRule(minimum=(5, 0, 0), incompatible=(((5, 0, 0), (5, 1, 0)),)),
}


@dataclass(frozen=True)
class VersionCheck:
    compatible: bool
    version: Version | None
    reason: str | None = None


def platform_family(platform: str | None = None) -> str:
    platform = platform or sys.platform
    return "windows" if platform.startswith(("win", "cygwin")) else "posix"


def parse_version(text: str) -> Version | None:
    """Extract the first ``major.minor[.patch]`` from *text*."""
    match = _VERSION_RE.search(text)
    if match is None:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


def check_compatibility(version: Version | None, family: str) -> VersionCheck:
    if version is None:
        return VersionCheck(False, None, "klog did not report a recognizable version")
    rule = _RULES[family]
    if version < rule.minimum:
        return VersionCheck(
            False,
            version,
            f"klog {format_version(version)} is older than the minimum supported "
            f"version {format_version(rule.minimum)}",
        )
    for low, high in rule.incompatible:
        if low <= version < high:
            return VersionCheck(
                False,
                version,
                f"klog {format_version(version)} is known to be incompatible on {family}",
            )
    return VersionCheck(True, version)


async def query_version(executable: str, timeout: float | None = None) -> Version | None:
    """Ask *executable* for its version.

    Raises :class:`~klogls.service.invoker.ValidatorInvocationError` if it
    cannot be run.
    """
    output = await run_command(executable, [VERSION_COMMAND], "", timeout)
    return parse_version(output)
