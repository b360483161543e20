"""Narrow facade over the Vault logical API."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import hvac
from hvac.exceptions import InvalidPath, InvalidRequest, VaultError

from sshca_infra.config import VaultSettings
from sshca_infra.errors import BackendRejectionError

logger: logging.Logger = logging.getLogger(__name__)


def ca_path(backend: str) -> str:
    """Return the API path of the CA configuration for a mount."""
    return f"{backend.strip('/')}/config/ca"


class LogicalClient(Protocol):
    """Path-addressed read/write/delete, as consumed by the reconciler."""

    def read(self, path: str) -> dict[str, Any] | None:
        """Return the ``data`` of ``path``, or ``None`` when nothing is there."""
        ...

    def write(self, path: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """Write ``data`` to ``path`` and return any response ``data``."""
        ...

    def delete(self, path: str) -> None:
        """Delete ``path``."""
        ...


def _unwrap(response: Any) -> dict[str, Any] | None:
    """Extract the ``data`` payload from an hvac response envelope."""
    if not isinstance(response, dict):
        return None
    data = response.get("data")
    if isinstance(data, dict) and data:
        return data
    return None


class HvacLogicalClient:
    """``LogicalClient`` backed by ``hvac.Client``.

    Transport, authentication and server errors raised by hvac propagate
    unchanged. ``InvalidRequest`` (HTTP 400) on a write becomes
    ``BackendRejectionError``; ``InvalidPath`` (HTTP 404) on a delete means the
    path is already gone.
    """

    def __init__(self, client: hvac.Client) -> None:
        self._client: hvac.Client = client

    @classmethod
    def from_settings(cls, settings: VaultSettings | None = None) -> HvacLogicalClient:
        """Build a client from ``VaultSettings`` (loaded from the environment by default)."""
        settings = settings or VaultSettings.load()
        verify: bool | str = settings.ca_cert or not settings.skip_verify
        client = hvac.Client(
            url=settings.addr,
            token=settings.token.get_secret_value() or None,
            namespace=settings.namespace,
            verify=verify,
            timeout=settings.timeout,
        )
        return cls(client)

    def read(self, path: str) -> dict[str, Any] | None:
        logger.debug("vault_read", extra={"path": path})
        return _unwrap(self._client.read(path))

    def write(self, path: str, data: dict[str, Any]) -> dict[str, Any] | None:
        logger.debug("vault_write", extra={"path": path, "fields": sorted(data)})
        try:
            response = self._client.write_data(path, data=data)
        except InvalidRequest as e:
            raise BackendRejectionError(path, _error_strings(e)) from e
        return _unwrap(response)

    def delete(self, path: str) -> None:
        logger.debug("vault_delete", extra={"path": path})
        try:
            self._client.delete(path)
        except InvalidPath:
            logger.debug("vault_delete_absent", extra={"path": path})


def _error_strings(error: VaultError) -> list[str]:
    errors = error.errors
    if not errors:
        return [str(error)]
    if isinstance(errors, str):
        return [errors]
    return [str(e) for e in errors]
