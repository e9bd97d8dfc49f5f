"""Validation cycle orchestration: document events in, diagnostics out.

One *cycle* resolves the document's settings, runs ``klog json`` on the
current text, interprets the output and publishes the resulting diagnostics.
Cycles for different documents interleave freely.  For a single document only
the most recently started cycle may publish, so a slow, older run can never
overwrite the result of a newer one.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from lsprotocol import types

from klogls.models.capabilities import ServerCapabilities
from klogls.models.settings import EffectiveSettings, ValidateOn
from klogls.service.diagnostics import diagnostic_from_error, sentinel_diagnostic
from klogls.service.interpreter import interpret
from klogls.service.invoker import ValidatorInvocationError, find_executable, run_validator
from klogls.service.settings_resolver import (
    ConfigurationRequestError,
    ConfigurationSource,
    SettingsResolver,
)
from klogls.service.version_check import (
    Version,
    VersionCheck,
    check_compatibility,
    platform_family,
    query_version,
)

logger = logging.getLogger("klogls.orchestrator")

Validator = Callable[[str, str, float | None], Awaitable[str]]
VersionProbe = Callable[[str, float | None], Awaitable[Version | None]]


class LanguageClient(ConfigurationSource, Protocol):
    """What the orchestrator needs from the editor connection."""

    def publish_diagnostics(self, uri: str, diagnostics: list[types.Diagnostic]) -> None: ...

    def document_text(self, uri: str) -> str | None: ...

    def open_documents(self) -> list[str]: ...

    def show_warning(self, message: str) -> None: ...


class ValidationOrchestrator:
    """Reacts to document lifecycle events and drives validation cycles."""

    def __init__(
        self,
        client: LanguageClient,
        capabilities: ServerCapabilities,
        *,
        fallback: EffectiveSettings | None = None,
        timeout: float | None = None,
        validator: Validator = run_validator,
        version_probe: VersionProbe = query_version,
    ) -> None:
        self._client = client
        self._capabilities = capabilities
        self._resolver = SettingsResolver(client, capabilities, fallback)
        self._timeout = timeout
        self._validator = validator
        self._version_probe = version_probe
        self._cycle_numbers = itertools.count(1)
        self._open: set[str] = set()
        self._latest_cycle: dict[str, int] = {}
        self._checked_executables: set[str] = set()

    @property
    def resolver(self) -> SettingsResolver:
        return self._resolver

    # -- document events -----------------------------------------------------

    async def document_opened(self, uri: str) -> None:
        self._open.add(uri)
        await self._on_trigger(uri, ValidateOn.EDIT)

    async def document_changed(self, uri: str) -> None:
        await self._on_trigger(uri, ValidateOn.EDIT)

    async def document_saved(self, uri: str) -> None:
        await self._on_trigger(uri, ValidateOn.SAVE)

    def document_closed(self, uri: str) -> None:
        """Tear down per-document state; in-flight cycles will not publish."""
        self._open.discard(uri)
        self._latest_cycle.pop(uri, None)
        self._resolver.forget(uri)

    async def configuration_changed(self, settings: object) -> None:
        """Apply new settings and re-validate every open document."""
        self._resolver.configuration_changed(settings)
        uris = self._client.open_documents()
        logger.info("Configuration changed, re-validating %d document(s)", len(uris))
        await asyncio.gather(*(self.validate(uri) for uri in uris))

    # -- cycle ---------------------------------------------------------------

    async def validate(self, uri: str, settings: EffectiveSettings | None = None) -> None:
        """Run one full cycle for *uri* and publish its diagnostics."""
        if uri not in self._open:
            logger.debug("Document %s is not open, skipping", uri)
            return
        cycle = next(self._cycle_numbers)
        self._latest_cycle[uri] = cycle

        if settings is None:
            settings = await self._resolve(uri)
            if settings is None:
                return
        if not settings.is_configured:
            logger.debug("Validation not configured for %s, skipping", uri)
            return

        diagnostics = await self._run(uri, settings)
        if diagnostics is None:
            return
        if uri not in self._open:
            logger.debug("Discarding result of cycle %d for closed %s", cycle, uri)
            return
        if self._latest_cycle.get(uri) != cycle:
            logger.debug("Discarding result of superseded cycle %d for %s", cycle, uri)
            return
        self._client.publish_diagnostics(uri, diagnostics)

    async def _on_trigger(self, uri: str, trigger: ValidateOn) -> None:
        settings = await self._resolve(uri)
        if settings is None or settings.validate_on != trigger:
            return
        await self.validate(uri, settings)

    async def _resolve(self, uri: str) -> EffectiveSettings | None:
        try:
            return await self._resolver.resolve(uri)
        except ConfigurationRequestError as exc:
            logger.warning("Could not resolve settings for %s: %s", uri, exc)
            return None

    async def _run(self, uri: str, settings: EffectiveSettings) -> list[types.Diagnostic] | None:
        executable = find_executable(settings.executable_path)
        if executable is None:
            logger.warning("Invalid klog path %r", settings.executable_path)
            return [sentinel_diagnostic(f"Invalid klog path '{settings.executable_path}'")]

        await self._check_version(executable)

        text = self._client.document_text(uri)
        if text is None:
            logger.debug("Document %s is no longer available", uri)
            return None

        try:
            raw = await self._validator(executable, text, self._timeout)
        except ValidatorInvocationError as exc:
            logger.warning("klog invocation failed for %s: %s", uri, exc)
            return [sentinel_diagnostic(str(exc))]

        related = self._capabilities.related_information
        return [
            diagnostic_from_error(error, uri, related_information=related)
            for error in interpret(raw)
        ]

    async def _check_version(self, executable: str) -> None:
        """Warn once per executable whose version is unsupported."""
        if executable in self._checked_executables:
            return
        self._checked_executables.add(executable)
        try:
            version = await self._version_probe(executable, self._timeout)
        except ValidatorInvocationError as exc:
            check = VersionCheck(False, None, str(exc))
        else:
            check = check_compatibility(version, platform_family())
        if not check.compatible:
            logger.warning("Version check failed for %s: %s", executable, check.reason)
            self._client.show_warning(f"{check.reason}. Diagnostics may be unreliable.")
