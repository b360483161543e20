"""State upgraders for persisted SSH CA records.

Each upgrader is a pure function taking a record of version ``n`` to
version ``n + 1``. ``upgrade_state`` chains them until the record matches
``SCHEMA_VERSION``. No upgrader talks to Vault.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from sshca_infra.errors import StateUpgradeError
from sshca_infra.schema import LEGACY_KEY_BITS, LEGACY_KEY_TYPE, SCHEMA_VERSION

logger: logging.Logger = logging.getLogger(__name__)

StateRecord = dict[str, Any]


def state_version(record: Mapping[str, Any]) -> int:
    """Return the schema version a record was written under (0 when untagged)."""
    version = record.get("schema_version", 0)
    if version is None:
        return 0
    if isinstance(version, bool) or not isinstance(version, int | float):
        raise StateUpgradeError(
            f"schema_version must be an integer, got {version!r}", ["schema_version"]
        )
    if int(version) != version:
        raise StateUpgradeError(
            f"schema_version must be an integer, got {version!r}", ["schema_version"]
        )
    return int(version)


def needs_upgrade(record: Mapping[str, Any]) -> bool:
    return state_version(record) != SCHEMA_VERSION


def upgrade_v0_to_v1(record: Mapping[str, Any]) -> StateRecord:
    """Add ``key_type`` and ``key_bits`` with Vault's pre-existing defaults."""
    present = [name for name in ("key_type", "key_bits") if name in record]
    if present:
        raise StateUpgradeError(
            f"version 0 state must not contain {', '.join(present)}", present
        )
    upgraded = dict(record)
    upgraded["key_type"] = LEGACY_KEY_TYPE
    upgraded["key_bits"] = LEGACY_KEY_BITS
    upgraded["schema_version"] = 1
    return upgraded


UPGRADERS: dict[int, Callable[[Mapping[str, Any]], StateRecord]] = {
    0: upgrade_v0_to_v1,
}


def upgrade_state(record: Any) -> StateRecord:
    """Bring a persisted record up to the current schema version.

    The input is never mutated. A record already at the current version is
    returned as a shallow copy.

    Raises:
        StateUpgradeError: If the record is not shaped like its version
            says, or was written by a newer schema than this one.
    """
    if not isinstance(record, Mapping):
        raise StateUpgradeError(
            f"state record must be a mapping, got {type(record).__name__}"
        )
    backend = record.get("backend")
    if not isinstance(backend, str) or not backend:
        raise StateUpgradeError("state record has no backend", ["backend"])

    version = state_version(record)
    if version > SCHEMA_VERSION:
        raise StateUpgradeError(
            f"state for backend {backend!r} has schema version {version}, "
            f"newer than supported version {SCHEMA_VERSION}",
            ["schema_version"],
        )

    upgraded: StateRecord = dict(record)
    while version < SCHEMA_VERSION:
        step = UPGRADERS.get(version)
        if step is None:
            raise StateUpgradeError(
                f"no state upgrader registered for schema version {version}",
                ["schema_version"],
            )
        upgraded = step(upgraded)
        logger.info(
            "ssh_ca_state_upgraded",
            extra={"backend": backend, "from_version": version, "to_version": version + 1},
        )
        version += 1
    upgraded["schema_version"] = SCHEMA_VERSION
    return upgraded
