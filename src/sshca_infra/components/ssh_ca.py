"""Provider-agnostic SSH CA component interface."""

from __future__ import annotations

import logging
from typing import Protocol

import pulumi

logger: logging.Logger = logging.getLogger(__name__)


class SshCaOutputs:
    """Resolved outputs from a provisioned SSH CA component."""

    def __init__(
        self,
        backend: pulumi.Output[str],
        public_key: pulumi.Output[str],
    ) -> None:
        """Initialise SSH CA outputs.

        Args:
            backend: Path of the SSH secrets engine mount.
            public_key: OpenSSH public key of the signing CA.
        """
        self.backend: pulumi.Output[str] = backend
        self.public_key: pulumi.Output[str] = public_key


class SshCa(Protocol):
    """Provider-agnostic interface for the SSH signing CA component."""

    @property
    def outputs(self) -> SshCaOutputs:
        """Return the resolved SSH CA outputs."""
        ...
