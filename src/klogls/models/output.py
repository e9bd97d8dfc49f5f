"""Schema of the JSON document printed by ``klog json``.

The validator prints exactly one of two shapes::

    {"records": [...], "errors": null}     # file is valid
    {"records": null, "errors": [...]}     # file has violations

All models are strict: wrong types are rejected rather than coerced, so a
document that only resembles the schema fails to decode.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt


class KlogError(BaseModel):
    """A single violation reported by the validator.

    ``line`` and ``column`` are 1-based; ``length`` counts columns on that
    same line.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    line: PositiveInt
    column: PositiveInt
    length: NonNegativeInt
    title: str
    details: str


class _EntryBase(BaseModel):
    model_config = ConfigDict(strict=True)

    summary: str
    tags: list[str]
    total: str
    total_mins: int


class RangeEntry(_EntryBase):
    type: Literal["range"]
    start: str
    start_mins: int
    end: str
    end_mins: int


class OpenRangeEntry(_EntryBase):
    type: Literal["open_range"]
    start: str
    start_mins: int


class DurationEntry(_EntryBase):
    type: Literal["duration"]


KlogEntry = Annotated[
    RangeEntry | OpenRangeEntry | DurationEntry,
    Field(discriminator="type"),
]


class KlogRecord(BaseModel):
    """One dated record of the work log. Passed through, never inspected."""

    model_config = ConfigDict(strict=True)

    date: str
    summary: str
    total: str
    total_mins: int
    should_total: str
    should_total_mins: int
    diff: str
    diff_mins: int
    tags: list[str]
    entries: list[KlogEntry]


class KlogSuccess(BaseModel):
    model_config = ConfigDict(strict=True)

    records: list[KlogRecord]
    errors: None


class KlogFailure(BaseModel):
    model_config = ConfigDict(strict=True)

    records: None
    errors: list[KlogError]


KlogOutput = KlogSuccess | KlogFailure
