"""Pydantic domain models for the klog language server."""

from klogls.models.capabilities import ServerCapabilities
from klogls.models.output import (
    KlogEntry,
    KlogError,
    KlogFailure,
    KlogOutput,
    KlogRecord,
    KlogSuccess,
)
from klogls.models.settings import EffectiveSettings, ValidateOn

__all__ = [
    "EffectiveSettings",
    "KlogEntry",
    "KlogError",
    "KlogFailure",
    "KlogOutput",
    "KlogRecord",
    "KlogSuccess",
    "ServerCapabilities",
    "ValidateOn",
]
