"""Rebuild SSH CA state from nothing but a mount path.

Vault never reports the key source, so an imported record carries only
``backend``, ``public_key`` and the legacy ``key_type``/``key_bits``
defaults. ``private_key``, ``generate_signing_key`` and the managed key
reference stay unset until the next apply.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sshca_infra.schema import (
    LEGACY_KEY_BITS,
    LEGACY_KEY_TYPE,
    SCHEMA_VERSION,
    attributes_for_version,
    normalize_backend,
)

if TYPE_CHECKING:
    from sshca_infra.reconciler import SshCaReconciler

logger: logging.Logger = logging.getLogger(__name__)


def state_from_id(backend: str) -> dict[str, Any]:
    """Synthesize a current-version record keyed only by ``backend``."""
    record: dict[str, Any] = {a.name: None for a in attributes_for_version(SCHEMA_VERSION)}
    record.update(
        backend=normalize_backend(backend),
        key_type=LEGACY_KEY_TYPE,
        key_bits=LEGACY_KEY_BITS,
        schema_version=SCHEMA_VERSION,
    )
    return record


def import_state(reconciler: SshCaReconciler, backend: str) -> dict[str, Any] | None:
    """Import the CA of an existing mount by reading it into a synthesized record.

    Returns ``None`` when the mount has no CA configured.
    """
    record = state_from_id(backend)
    state = reconciler.read(record)
    logger.info(
        "ssh_ca_import_finished",
        extra={"backend": record["backend"], "found": state is not None},
    )
    return state
