"""Post-delete checks that a mount no longer reports a CA."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sshca_infra.client import LogicalClient, ca_path
from sshca_infra.errors import DriftError

logger: logging.Logger = logging.getLogger(__name__)


def verify_destroyed(client: LogicalClient, backend: str) -> None:
    """Assert that ``<backend>/config/ca`` returns no content.

    Raises:
        DriftError: If CA information is still reported for ``backend``.
    """
    if client.read(ca_path(backend)) is not None:
        logger.warning("ssh_ca_still_present", extra={"backend": backend})
        raise DriftError(backend, f"CA information still exists for backend {backend!r}")
    logger.debug("ssh_ca_destroy_verified", extra={"backend": backend})


def verify_all_destroyed(client: LogicalClient, backends: Iterable[str]) -> None:
    """Run ``verify_destroyed`` for every mount, stopping at the first survivor."""
    for backend in backends:
        verify_destroyed(client, backend)
