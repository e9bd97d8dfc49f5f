"""Process settings loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from klogls.models.settings import EffectiveSettings, ValidateOn


class Settings(BaseSettings):
    """Configuration for the klog language server process.

    Values are read from ``KLOGLS_``-prefixed environment variables and from a
    ``.env`` file in the working directory.  Editor settings sent over the
    protocol take precedence over ``klog_path`` and ``validate_on``, which
    only seed the fallback used when the editor sends nothing usable.
    """

    model_config = SettingsConfigDict(
        env_prefix="KLOGLS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Transport
    transport: Literal["stdio", "tcp"] = "stdio"
    tcp_host: str = "127.0.0.1"
    tcp_port: int = 2087

    # Validator
    validator_timeout_seconds: float = 10.0
    klog_path: str = ""
    validate_on: ValidateOn = ValidateOn.SAVE

    @property
    def fallback_settings(self) -> EffectiveSettings:
        """Document settings used when the editor provides none."""
        return EffectiveSettings(
            enabled=True,
            executable_path=self.klog_path,
            validate_on=self.validate_on,
        )
