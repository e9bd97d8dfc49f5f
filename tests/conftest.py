"""Shared test fixtures for the klog language server."""

from __future__ import annotations

import asyncio
import json
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest
from lsprotocol import types

from klogls.models.capabilities import ServerCapabilities
from klogls.service.settings_resolver import ConfigurationRequestError

DOC_URI = "file:///home/user/work.klg"
OTHER_URI = "file:///home/user/other.klg"

VALID_DOCUMENT = "2023-01-01\n  08:00-09:00 work"

SAMPLE_RECORD = {
    "date": "2023-01-01",
    "summary": "",
    "total": "1h",
    "total_mins": 60,
    "should_total": "0m",
    "should_total_mins": 0,
    "diff": "+1h",
    "diff_mins": 60,
    "tags": [],
    "entries": [
        {
            "type": "range",
            "summary": "work",
            "tags": [],
            "total": "1h",
            "total_mins": 60,
            "start": "8:00",
            "start_mins": 480,
            "end": "9:00",
            "end_mins": 540,
        }
    ],
}

SUCCESS_OUTPUT = json.dumps({"records": [SAMPLE_RECORD], "errors": None})

BAD_ENTRY_ERROR = {
    "line": 2,
    "column": 3,
    "length": 5,
    "title": "Bad entry",
    "details": "Expected time range",
}

FAILURE_OUTPUT = json.dumps({"records": None, "errors": [BAD_ENTRY_ERROR]})


def klog_section(
    path: str = "", validate_on: str = "save", enable: bool = True
) -> dict[str, object]:
    """A ``klog`` configuration section as an editor would send it."""
    return {"languageServer": {"enable": enable, "path": path, "validateOn": validate_on}}


class FakeClient:
    """In-memory stand-in for the editor connection."""

    def __init__(self) -> None:
        self.documents: dict[str, str] = {}
        self.configuration: dict[str, object] = {}
        self.default_configuration: object = None
        self.configuration_requests: list[str] = []
        self.fail_configuration = False
        self.configuration_gate: asyncio.Event | None = None
        self.published: list[tuple[str, list[types.Diagnostic]]] = []
        self.warnings: list[str] = []

    async def get_configuration(self, uri: str, section: str) -> object:
        assert section == "klog"
        self.configuration_requests.append(uri)
        if self.configuration_gate is not None:
            await self.configuration_gate.wait()
        if self.fail_configuration:
            raise ConfigurationRequestError("request rejected")
        return self.configuration.get(uri, self.default_configuration)

    def publish_diagnostics(self, uri: str, diagnostics: list[types.Diagnostic]) -> None:
        self.published.append((uri, diagnostics))

    def document_text(self, uri: str) -> str | None:
        return self.documents.get(uri)

    def open_documents(self) -> list[str]:
        return list(self.documents)

    def show_warning(self, message: str) -> None:
        self.warnings.append(message)

    def publications_for(self, uri: str) -> list[list[types.Diagnostic]]:
        return [diagnostics for published_uri, diagnostics in self.published if published_uri == uri]


@pytest.fixture
def client() -> FakeClient:
    client = FakeClient()
    client.documents[DOC_URI] = VALID_DOCUMENT
    return client


@pytest.fixture
def scoped_capabilities() -> ServerCapabilities:
    return ServerCapabilities(configuration=True, workspace_folders=True, related_information=True)


@pytest.fixture
def make_executable(tmp_path: Path) -> Callable[..., str]:
    """Write a Python script to *tmp_path* and return its path."""

    def _make(body: str, name: str = "klog") -> str:
        script = tmp_path / name
        script.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
        script.chmod(0o755)
        return str(script)

    return _make


@pytest.fixture
def fake_klog(make_executable: Callable[..., str]) -> Callable[..., str]:
    """A fake ``klog`` that answers ``version`` and prints *output* for ``json``."""

    def _make(output: str, version: str = "v6.1", name: str = "klog") -> str:
        body = f"""
            import sys

            if sys.argv[1:] == ["version"]:
                print("Command line tool: {version}")
                sys.exit(0)
            assert sys.argv[1:] == ["json"], sys.argv
            sys.stdin.read()
            sys.stdout.write({output!r})
        """
        return make_executable(body, name=name)

    return _make
