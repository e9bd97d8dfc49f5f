"""Per-document settings resolution backed by a scoped-configuration cache."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Protocol

from klogls.models.capabilities import ServerCapabilities
from klogls.models.settings import EffectiveSettings

logger = logging.getLogger("klogls.settings_resolver")

CONFIGURATION_SECTION = "klog"


class ConfigurationRequestError(Exception):
    """Raised when the editor fails to answer a configuration request."""


class ConfigurationSource(Protocol):
    async def get_configuration(self, uri: str, section: str) -> object: ...


class DocumentSettingsCache:
    """Pending or resolved settings per document URI.

    Entries are futures so that concurrent lookups for the same document share
    a single round-trip.  Failed lookups drop out of the cache on completion.
    """

    def __init__(self) -> None:
        self._entries: dict[str, asyncio.Future[EffectiveSettings]] = {}

    def get_or_resolve(
        self, uri: str, resolve: Callable[[], Awaitable[EffectiveSettings]]
    ) -> asyncio.Future[EffectiveSettings]:
        entry = self._entries.get(uri)
        if entry is None:
            entry = asyncio.ensure_future(resolve())
            entry.add_done_callback(partial(self._discard_failed, uri))
            self._entries[uri] = entry
        return entry

    def invalidate_all(self) -> None:
        self._entries.clear()

    def remove(self, uri: str) -> None:
        self._entries.pop(uri, None)

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _discard_failed(self, uri: str, future: asyncio.Future[EffectiveSettings]) -> None:
        if future.cancelled() or future.exception() is not None:
            if self._entries.get(uri) is future:
                del self._entries[uri]


class SettingsResolver:
    """Resolves the :class:`EffectiveSettings` in force for a document.

    With a scoped-configuration capable editor every document is resolved
    through a ``workspace/configuration`` request and cached until the next
    configuration change or until the document closes.  Otherwise a single
    process-wide value is used, replaced from each change notification.
    """

    def __init__(
        self,
        source: ConfigurationSource,
        capabilities: ServerCapabilities,
        fallback: EffectiveSettings | None = None,
    ) -> None:
        self._source = source
        self._capabilities = capabilities
        self._fallback = fallback or EffectiveSettings()
        self._global = self._fallback
        self._cache = DocumentSettingsCache()

    @property
    def cache(self) -> DocumentSettingsCache:
        return self._cache

    async def resolve(self, uri: str) -> EffectiveSettings:
        """Return settings for *uri*.

        Raises :class:`ConfigurationRequestError` if the editor rejects the
        configuration request.
        """
        if not self._capabilities.configuration:
            return self._global
        entry = self._cache.get_or_resolve(uri, partial(self._request, uri))
        return await asyncio.shield(entry)

    def configuration_changed(self, settings: object) -> None:
        """Apply a ``workspace/didChangeConfiguration`` payload."""
        if self._capabilities.configuration:
            logger.debug("Dropping %d cached document settings", len(self._cache))
            self._cache.invalidate_all()
            return
        section = settings.get(CONFIGURATION_SECTION) if isinstance(settings, dict) else None
        self._global = EffectiveSettings.from_section(section, self._fallback)
        logger.info("Global settings replaced: %s", self._global)

    def forget(self, uri: str) -> None:
        """Drop the cached settings of a closed document."""
        self._cache.remove(uri)

    async def _request(self, uri: str) -> EffectiveSettings:
        payload = await self._source.get_configuration(uri, CONFIGURATION_SECTION)
        return EffectiveSettings.from_section(payload, self._fallback)
