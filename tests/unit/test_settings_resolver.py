"""Tests for per-document settings resolution."""

from __future__ import annotations

import asyncio

import pytest

from klogls.models.capabilities import ServerCapabilities
from klogls.models.settings import EffectiveSettings, ValidateOn
from klogls.service.settings_resolver import (
    ConfigurationRequestError,
    DocumentSettingsCache,
    SettingsResolver,
)
from tests.conftest import DOC_URI, OTHER_URI, FakeClient, klog_section


@pytest.fixture
def scoped(client: FakeClient, scoped_capabilities: ServerCapabilities) -> SettingsResolver:
    return SettingsResolver(client, scoped_capabilities)


@pytest.fixture
def unscoped(client: FakeClient) -> SettingsResolver:
    return SettingsResolver(
        client, ServerCapabilities(), EffectiveSettings(executable_path="/opt/klog")
    )


class TestDocumentSettingsCache:
    async def test_shares_pending_lookup(self) -> None:
        cache = DocumentSettingsCache()
        calls = 0

        async def resolve() -> EffectiveSettings:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return EffectiveSettings()

        first = cache.get_or_resolve(DOC_URI, resolve)
        second = cache.get_or_resolve(DOC_URI, resolve)
        assert first is second
        await first
        assert calls == 1

    async def test_failed_lookup_dropped(self) -> None:
        cache = DocumentSettingsCache()

        async def resolve() -> EffectiveSettings:
            raise ConfigurationRequestError("nope")

        entry = cache.get_or_resolve(DOC_URI, resolve)
        with pytest.raises(ConfigurationRequestError):
            await entry
        await asyncio.sleep(0)
        assert DOC_URI not in cache

    async def test_remove_and_invalidate(self) -> None:
        cache = DocumentSettingsCache()

        async def resolve() -> EffectiveSettings:
            return EffectiveSettings()

        await cache.get_or_resolve(DOC_URI, resolve)
        await cache.get_or_resolve(OTHER_URI, resolve)
        cache.remove(DOC_URI)
        assert DOC_URI not in cache
        assert OTHER_URI in cache
        cache.remove(DOC_URI)
        cache.invalidate_all()
        assert len(cache) == 0


class TestScopedResolution:
    async def test_requests_document_scope(
        self, scoped: SettingsResolver, client: FakeClient
    ) -> None:
        client.configuration[DOC_URI] = klog_section("/usr/bin/klog", validate_on="edit")
        settings = await scoped.resolve(DOC_URI)
        assert settings == EffectiveSettings(
            executable_path="/usr/bin/klog", validate_on=ValidateOn.EDIT
        )
        assert client.configuration_requests == [DOC_URI]

    async def test_cached_per_document(self, scoped: SettingsResolver, client: FakeClient) -> None:
        await scoped.resolve(DOC_URI)
        await scoped.resolve(DOC_URI)
        await scoped.resolve(OTHER_URI)
        assert client.configuration_requests == [DOC_URI, OTHER_URI]

    async def test_configuration_change_invalidates_everything(
        self, scoped: SettingsResolver, client: FakeClient
    ) -> None:
        client.configuration[DOC_URI] = klog_section("/old/klog")
        assert (await scoped.resolve(DOC_URI)).executable_path == "/old/klog"
        await scoped.resolve(OTHER_URI)

        client.configuration[DOC_URI] = klog_section("/new/klog")
        scoped.configuration_changed(None)

        assert (await scoped.resolve(DOC_URI)).executable_path == "/new/klog"
        await scoped.resolve(OTHER_URI)
        assert client.configuration_requests == [DOC_URI, OTHER_URI, DOC_URI, OTHER_URI]

    async def test_forget_only_affects_one_document(
        self, scoped: SettingsResolver, client: FakeClient
    ) -> None:
        await scoped.resolve(DOC_URI)
        await scoped.resolve(OTHER_URI)
        scoped.forget(DOC_URI)
        assert DOC_URI not in scoped.cache
        assert OTHER_URI in scoped.cache

    async def test_rejected_request_propagates_and_retries(
        self, scoped: SettingsResolver, client: FakeClient
    ) -> None:
        client.fail_configuration = True
        with pytest.raises(ConfigurationRequestError):
            await scoped.resolve(DOC_URI)
        await asyncio.sleep(0)

        client.fail_configuration = False
        await scoped.resolve(DOC_URI)
        assert client.configuration_requests == [DOC_URI, DOC_URI]

    async def test_malformed_response_uses_fallback(
        self, client: FakeClient, scoped_capabilities: ServerCapabilities
    ) -> None:
        fallback = EffectiveSettings(executable_path="/opt/klog")
        resolver = SettingsResolver(client, scoped_capabilities, fallback)
        client.configuration[DOC_URI] = "not a section"
        assert await resolver.resolve(DOC_URI) == fallback


class TestGlobalResolution:
    async def test_no_configuration_requests(
        self, unscoped: SettingsResolver, client: FakeClient
    ) -> None:
        settings = await unscoped.resolve(DOC_URI)
        assert settings.executable_path == "/opt/klog"
        assert client.configuration_requests == []

    async def test_replaced_from_change_payload(self, unscoped: SettingsResolver) -> None:
        unscoped.configuration_changed({"klog": klog_section("/new/klog", validate_on="edit")})
        settings = await unscoped.resolve(OTHER_URI)
        assert settings.executable_path == "/new/klog"
        assert settings.validate_on == ValidateOn.EDIT

    @pytest.mark.parametrize(
        "payload", [None, {}, {"klog": None}, {"klog": 42}, {"other": klog_section("/x")}]
    )
    async def test_absent_or_malformed_payload_resets_to_fallback(
        self, unscoped: SettingsResolver, payload: object
    ) -> None:
        unscoped.configuration_changed({"klog": klog_section("/new/klog")})
        unscoped.configuration_changed(payload)
        assert (await unscoped.resolve(DOC_URI)).executable_path == "/opt/klog"
