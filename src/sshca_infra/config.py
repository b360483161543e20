"""Typed configuration loaded from environment variables at startup."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger: logging.Logger = logging.getLogger(__name__)


class KeyModeName(StrEnum):
    """How the SSH CA signing key is sourced."""

    GENERATED = "generated"
    PROVIDED = "provided"
    MANAGED = "managed"


class VaultSettings(BaseSettings):
    """Connection settings for the Vault API.

    Uses the same variable names as the Vault CLI (``VAULT_ADDR``,
    ``VAULT_TOKEN``, ...), so an authenticated shell needs no extra setup.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    addr: str = "http://127.0.0.1:8200"
    token: SecretStr = SecretStr("")
    namespace: str | None = None
    skip_verify: bool = False
    ca_cert: str | None = None
    timeout: int = 30

    @classmethod
    def load(cls) -> VaultSettings:
        """Load Vault connection settings from the environment.

        The token is never logged.
        """
        settings = cls()
        logger.debug(
            "vault_settings_loaded",
            extra={
                "addr": settings.addr,
                "namespace": settings.namespace,
                "skip_verify": settings.skip_verify,
                "timeout": settings.timeout,
            },
        )
        return settings


class StackConfig(BaseSettings):
    """Fully validated SSH CA stack configuration.

    All values are sourced from environment variables at startup.
    Raises ``ValidationError`` on missing or invalid values.
    """

    model_config = SettingsConfigDict(
        env_prefix="SSHCA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: str
    key_mode: KeyModeName = KeyModeName.GENERATED
    private_key_file: str = ""
    public_key: str = ""
    managed_key_id: str = ""
    managed_key_name: str = ""
    allowed_managed_keys: list[str] = []
    key_type: str | None = None
    key_bits: int | None = None
    create_mount: bool = True
    mount_description: str = "SSH secret backend"
    environment: Literal["prod", "staging", "dev"] = "prod"

    @model_validator(mode="after")
    def _check_key_source(self) -> StackConfig:
        if self.key_mode == KeyModeName.PROVIDED and not self.private_key_file:
            raise ValueError("private_key_file is required when key_mode is provided")
        if self.key_mode == KeyModeName.MANAGED and not (
            self.managed_key_id or self.managed_key_name
        ):
            raise ValueError(
                "managed_key_id or managed_key_name is required when key_mode is managed"
            )
        return self

    @classmethod
    def load(cls) -> StackConfig:
        """Load and validate configuration from the environment.

        Logs each resolved setting at DEBUG level.
        Raises ``pydantic.ValidationError`` on missing or invalid values.
        """
        config = cls()  # type: ignore[call-arg]  # env vars supply required fields
        logger.debug(
            "stack_config_loaded",
            extra={
                "backend": config.backend,
                "key_mode": config.key_mode.value,
                "create_mount": config.create_mount,
                "environment": config.environment,
            },
        )
        return config
