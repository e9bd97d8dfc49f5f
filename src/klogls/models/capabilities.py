"""Client capability flags the server reads once, at initialization."""

from __future__ import annotations

from dataclasses import dataclass

from lsprotocol import types


@dataclass(frozen=True)
class ServerCapabilities:
    """Immutable view of what the connected editor supports."""

    configuration: bool = False
    workspace_folders: bool = False
    related_information: bool = False

    @classmethod
    def from_client(cls, capabilities: types.ClientCapabilities) -> ServerCapabilities:
        workspace = capabilities.workspace
        text_document = capabilities.text_document
        publish = text_document.publish_diagnostics if text_document else None
        return cls(
            configuration=bool(workspace and workspace.configuration),
            workspace_folders=bool(workspace and workspace.workspace_folders),
            related_information=bool(publish and publish.related_information),
        )
