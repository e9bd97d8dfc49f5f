"""Decoding of validator output into a list of :class:`KlogError`."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import TypeAdapter, ValidationError

from klogls.models.output import KlogError, KlogFailure, KlogOutput, KlogSuccess

logger = logging.getLogger("klogls.interpreter")

_OUTPUT_ADAPTER: TypeAdapter[KlogOutput] = TypeAdapter(KlogOutput)

PARSE_ERROR_TITLE = "Could not parse klog output"
# Position of the synthetic parse error: start of the document, short span.
_PARSE_ERROR_LINE = 1
_PARSE_ERROR_COLUMN = 1
_PARSE_ERROR_LENGTH = 99


@dataclass(frozen=True)
class DecodeFailure:
    """Output that is not JSON or does not match either result shape."""

    reason: str


def decode_output(raw: str) -> KlogOutput | DecodeFailure:
    """Decode *raw* against the result schema. Never raises."""
    if not raw.strip():
        return DecodeFailure("klog produced no output")
    try:
        return _OUTPUT_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        return DecodeFailure(_summarize(exc))


def interpret(raw: str) -> list[KlogError]:
    """Turn raw validator output into the errors to report.

    A valid document yields no errors; a failing one yields its errors in
    the order reported.  Undecodable output yields one synthetic error at
    the start of the document.
    """
    result = decode_output(raw)
    match result:
        case KlogSuccess():
            return []
        case KlogFailure(errors=errors):
            return list(errors)
        case DecodeFailure(reason=reason):
            logger.warning("Malformed klog output: %s", reason)
            return [parse_error(reason)]


def parse_error(reason: str) -> KlogError:
    return KlogError(
        line=_PARSE_ERROR_LINE,
        column=_PARSE_ERROR_COLUMN,
        length=_PARSE_ERROR_LENGTH,
        title=PARSE_ERROR_TITLE,
        details=reason,
    )


def _summarize(exc: ValidationError) -> str:
    # The deepest location is the most specific one across both union arms.
    detail = max(exc.errors(), key=lambda error: len(error["loc"]))
    location = ".".join(str(part) for part in detail["loc"])
    suffix = f" ({exc.error_count()} problems)" if exc.error_count() > 1 else ""
    if location:
        return f"{location}: {detail['msg']}{suffix}"
    return f"{detail['msg']}{suffix}"
