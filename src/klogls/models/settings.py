"""Editor-side settings for the ``klog`` configuration section."""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("klogls.settings")


class ValidateOn(StrEnum):
    SAVE = "save"
    EDIT = "edit"


class LanguageServerSection(BaseModel):
    """``klog.languageServer`` as sent by the editor. Unset keys stay ``None``."""

    enable: bool | None = None
    path: str | None = None
    validate_on: ValidateOn | None = Field(None, alias="validateOn")

    model_config = {"populate_by_name": True}


class KlogSection(BaseModel):
    """The whole ``klog`` configuration section."""

    language_server: LanguageServerSection = Field(
        default_factory=LanguageServerSection, alias="languageServer"
    )

    model_config = {"populate_by_name": True}


class EffectiveSettings(BaseModel):
    """Settings in force for one document (or process-wide)."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    executable_path: str = ""
    validate_on: ValidateOn = ValidateOn.SAVE

    @property
    def is_configured(self) -> bool:
        """True when validation is enabled and an executable path is set."""
        return self.enabled and bool(self.executable_path.strip())

    @classmethod
    def from_section(cls, payload: object, fallback: EffectiveSettings) -> EffectiveSettings:
        """Decode a ``klog`` section, filling unset keys from *fallback*.

        A missing or malformed payload yields *fallback* unchanged.
        """
        if payload is None:
            return fallback
        try:
            section = KlogSection.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Ignoring malformed klog settings: %s", exc)
            return fallback

        ls = section.language_server
        updates: dict[str, object] = {}
        if ls.enable is not None:
            updates["enabled"] = ls.enable
        if ls.path is not None:
            updates["executable_path"] = ls.path
        if ls.validate_on is not None:
            updates["validate_on"] = ls.validate_on
        return fallback.model_copy(update=updates)
