"""pygls language server exposing klog validation as LSP diagnostics.

Run via::

    klogls                                  # stdio (what editors spawn)
    KLOGLS_TRANSPORT=tcp klogls             # TCP on 127.0.0.1:2087

Settings are loaded from environment variables and ``.env`` file; editor
settings under the ``klog`` section override the validator defaults.
"""

from __future__ import annotations

import logging
import uuid

from lsprotocol import types
from pygls.exceptions import JsonRpcException
from pygls.lsp.server import LanguageServer

from klogls import __version__
from klogls.models.capabilities import ServerCapabilities
from klogls.service.orchestrator import ValidationOrchestrator
from klogls.service.settings_resolver import ConfigurationRequestError
from klogls.settings import Settings

# ---------------------------------------------------------------------------
# Server + shared state
# ---------------------------------------------------------------------------

logger = logging.getLogger("klogls.lsp")


class KlogLanguageServer(LanguageServer):
    """Language server holding the orchestrator built at initialization."""

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(
            "klogls",
            __version__,
            text_document_sync_kind=types.TextDocumentSyncKind.Incremental,
        )
        self.settings = settings or Settings()
        self.capability_flags = ServerCapabilities()
        self._orchestrator: ValidationOrchestrator | None = None

    @property
    def orchestrator(self) -> ValidationOrchestrator:
        if self._orchestrator is None:
            raise RuntimeError("Orchestrator not initialised, initialize() was never received")
        return self._orchestrator

    def build_pipeline(self, capabilities: ServerCapabilities) -> None:
        """Build the validation pipeline for a client with *capabilities*."""
        self.capability_flags = capabilities
        self._orchestrator = ValidationOrchestrator(
            PyglsClient(self),
            capabilities,
            fallback=self.settings.fallback_settings,
            timeout=self.settings.validator_timeout_seconds,
        )


class PyglsClient:
    """Adapts a pygls server to the orchestrator's client interface."""

    def __init__(self, server: LanguageServer) -> None:
        self._server = server

    async def get_configuration(self, uri: str, section: str) -> object:
        params = types.ConfigurationParams(
            items=[types.ConfigurationItem(scope_uri=uri, section=section)]
        )
        try:
            result = await self._server.workspace_configuration_async(params)
        except JsonRpcException as exc:
            raise ConfigurationRequestError(f"workspace/configuration failed: {exc}") from exc
        return result[0] if result else None

    def publish_diagnostics(self, uri: str, diagnostics: list[types.Diagnostic]) -> None:
        self._server.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def document_text(self, uri: str) -> str | None:
        if uri not in self._server.workspace.text_documents:
            return None
        return self._server.workspace.get_text_document(uri).source

    def open_documents(self) -> list[str]:
        return list(self._server.workspace.text_documents)

    def show_warning(self, message: str) -> None:
        self._server.window_show_message(
            types.ShowMessageParams(type=types.MessageType.Warning, message=message)
        )


server = KlogLanguageServer()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@server.feature(types.INITIALIZE)
def initialize(ls: KlogLanguageServer, params: types.InitializeParams) -> None:
    capabilities = ServerCapabilities.from_client(params.capabilities)
    logger.info("Client capabilities: %s", capabilities)
    ls.build_pipeline(capabilities)


@server.feature(types.INITIALIZED)
async def initialized(ls: KlogLanguageServer, params: types.InitializedParams) -> None:
    if not ls.capability_flags.configuration:
        return
    await ls.client_register_capability_async(
        types.RegistrationParams(
            registrations=[
                types.Registration(
                    id=str(uuid.uuid4()),
                    method=types.WORKSPACE_DID_CHANGE_CONFIGURATION,
                )
            ]
        )
    )


@server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
async def did_change_configuration(
    ls: KlogLanguageServer, params: types.DidChangeConfigurationParams
) -> None:
    await ls.orchestrator.configuration_changed(params.settings)


@server.feature(types.WORKSPACE_DID_CHANGE_WORKSPACE_FOLDERS)
def did_change_workspace_folders(
    ls: KlogLanguageServer, params: types.DidChangeWorkspaceFoldersParams
) -> None:
    logger.info(
        "Workspace folders changed (+%d, -%d)",
        len(params.event.added),
        len(params.event.removed),
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
async def did_open(ls: KlogLanguageServer, params: types.DidOpenTextDocumentParams) -> None:
    await ls.orchestrator.document_opened(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
async def did_change(ls: KlogLanguageServer, params: types.DidChangeTextDocumentParams) -> None:
    await ls.orchestrator.document_changed(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_SAVE)
async def did_save(ls: KlogLanguageServer, params: types.DidSaveTextDocumentParams) -> None:
    await ls.orchestrator.document_saved(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: KlogLanguageServer, params: types.DidCloseTextDocumentParams) -> None:
    ls.orchestrator.document_closed(params.text_document.uri)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the language server using settings from environment / .env file."""
    settings = Settings()
    server.settings = settings

    # stdout carries the protocol in stdio mode, logging goes to stderr.
    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "klog language server v%s starting (transport=%s)",
        __version__,
        settings.transport,
    )

    if settings.transport == "stdio":
        server.start_io()
    else:
        server.start_tcp(settings.tcp_host, settings.tcp_port)


if __name__ == "__main__":
    main()
