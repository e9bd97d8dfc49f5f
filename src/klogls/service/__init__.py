"""Validation pipeline: settings, invocation, interpretation, publication."""

from klogls.service.orchestrator import LanguageClient, ValidationOrchestrator
from klogls.service.settings_resolver import ConfigurationRequestError, SettingsResolver

__all__ = [
    "ConfigurationRequestError",
    "LanguageClient",
    "SettingsResolver",
    "ValidationOrchestrator",
]
