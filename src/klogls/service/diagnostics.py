"""Conversion of validator errors into LSP diagnostics."""

from __future__ import annotations

from lsprotocol import types

from klogls.models.output import KlogError

DIAGNOSTIC_SOURCE = "klog"

# Span on the first line used for problems that have no position in the document.
SENTINEL_END_CHARACTER = 99


def error_range(error: KlogError) -> types.Range:
    """0-based, half-open range of *error*; errors never span lines."""
    line = error.line - 1
    start = error.column - 1
    return types.Range(
        start=types.Position(line=line, character=start),
        end=types.Position(line=line, character=start + error.length),
    )


def diagnostic_from_error(
    error: KlogError, uri: str, *, related_information: bool
) -> types.Diagnostic:
    """Map one validator error to a diagnostic.

    ``details`` is attached as related information pointing at the same
    range when the editor supports it, and dropped otherwise.
    """
    diagnostic_range = error_range(error)
    diagnostic = types.Diagnostic(
        range=diagnostic_range,
        message=error.title,
        severity=types.DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE,
    )
    if related_information:
        diagnostic.related_information = [
            types.DiagnosticRelatedInformation(
                location=types.Location(uri=uri, range=error_range(error)),
                message=error.details,
            )
        ]
    return diagnostic


def sentinel_diagnostic(message: str) -> types.Diagnostic:
    """A diagnostic for a failure that is not tied to a document position."""
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=0, character=0),
            end=types.Position(line=0, character=SENTINEL_END_CHARACTER),
        ),
        message=message,
        severity=types.DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE,
    )
