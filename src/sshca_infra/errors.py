"""Error taxonomy for SSH CA reconciliation.

Transport failures (connectivity, authentication, timeouts) are not
represented here: they are raised by ``hvac``/``requests`` and propagate unmodified.
"""

from __future__ import annotations

from collections.abc import Iterable


class SshCaError(Exception):
    """Base class for every error raised by the reconciliation core."""


class CaValidationError(SshCaError):
    """Local configuration or state is invalid; no network call was made.

    Args:
        message: Human-readable description.
        fields: Names of the offending options.
    """

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields: tuple[str, ...] = tuple(fields)


class StateUpgradeError(CaValidationError):
    """A persisted state record does not match the shape its version implies."""


class BackendRejectionError(SshCaError):
    """Vault rejected the request (HTTP 400), e.g. malformed key material.

    Args:
        path: API path that was written.
        errors: Error strings reported by Vault, kept verbatim.
    """

    def __init__(self, path: str, errors: Iterable[str]) -> None:
        self.path: str = path
        self.errors: tuple[str, ...] = tuple(errors)
        detail = "; ".join(self.errors) or "no detail provided"
        super().__init__(f"Vault rejected write to {path!r}: {detail}")


class DriftError(SshCaError):
    """The backend's reported state contradicts what was just applied."""

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(message)
        self.backend: str = backend
