"""Create/read/update/delete reconciliation of a mount's SSH CA configuration.

The CA lives at ``<backend>/config/ca``. Vault has no partial update for
this object, so create and update are the same full write followed by a
read-back. Only ``public_key`` is ever taken from Vault; the key source
fields are write-only and stay as last applied.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sshca_infra import importer
from sshca_infra.client import LogicalClient, ca_path
from sshca_infra.errors import CaValidationError, DriftError
from sshca_infra.schema import (
    SCHEMA_VERSION,
    CaConfig,
    attributes_for_version,
    immutable_fields,
)
from sshca_infra.upgrade import upgrade_state
from sshca_infra.verifier import verify_destroyed

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaDiff:
    """Property-level difference between stored state and desired inputs."""

    changes: tuple[str, ...] = ()
    replaces: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.changes


def _normalized(value: Any) -> Any:
    # Unset, empty and false all mean "not selected" for the key source fields.
    return value or None


class SshCaReconciler:
    """Drives one CA configuration through ``Absent -> Present -> Absent``.

    Every operation is a blocking round trip on ``client``; errors raised
    by the client propagate unchanged and nothing is retried.

    Args:
        client: Facade over the Vault logical API.
    """

    def __init__(self, client: LogicalClient) -> None:
        self._client: LogicalClient = client

    def create(self, inputs: Mapping[str, Any]) -> dict[str, Any]:
        """Configure the CA of a mount and return the resulting state.

        Raises:
            CaValidationError: Before any request, if the inputs are invalid.
            BackendRejectionError: If Vault refuses the configuration.
            DriftError: If Vault reports no CA right after the write.
        """
        config = CaConfig.from_inputs(inputs)
        logger.info(
            "ssh_ca_create_started",
            extra={"backend": config.backend, "key_mode": type(config.key_mode).__name__},
        )
        return self._apply(config)

    def update(self, state: Mapping[str, Any], inputs: Mapping[str, Any]) -> dict[str, Any]:
        """Replace the whole CA configuration of an existing mount.

        Vault refuses to write ``config/ca`` while keys are configured, so the
        existing CA is deleted first, then the new configuration is written
        and read back. If the write fails after the delete, the mount is left
        without a CA and the next read reports the resource as absent.

        Raises:
            CaValidationError: If the inputs are invalid or change an
                immutable field, which requires a replacement. No request
                is made in that case.
        """
        current = upgrade_state(state)
        config = CaConfig.from_inputs(inputs)
        desired = config.applied_fields()
        moved = {
            name: (current.get(name), desired.get(name))
            for name in sorted(immutable_fields())
            if desired.get(name) != current.get(name)
        }
        if moved:
            detail = ", ".join(f"{n} from {old!r} to {new!r}" for n, (old, new) in moved.items())
            raise CaValidationError(
                f"cannot change {detail}; the resource must be replaced", list(moved)
            )
        logger.info(
            "ssh_ca_update_started",
            extra={"backend": config.backend, "key_mode": type(config.key_mode).__name__},
        )
        self._client.delete(ca_path(config.backend))
        return self._apply(config)

    def _apply(self, config: CaConfig) -> dict[str, Any]:
        path = ca_path(config.backend)
        self._client.write(path, config.to_payload())

        data = self._client.read(path)
        if data is None:
            raise DriftError(
                config.backend,
                f"CA configuration for backend {config.backend!r} is missing after write",
            )

        state = config.applied_fields()
        state["public_key"] = data.get("public_key")
        state["schema_version"] = SCHEMA_VERSION
        logger.info("ssh_ca_applied", extra={"backend": config.backend})
        return state

    def read(self, state: Mapping[str, Any]) -> dict[str, Any] | None:
        """Refresh ``state`` from Vault.

        Returns ``None`` when the mount has no CA, meaning the resource is
        gone and must be recreated. Write-only fields are carried over from
        ``state`` untouched.
        """
        current = upgrade_state(state)
        data = self._client.read(ca_path(current["backend"]))
        if data is None:
            logger.info("ssh_ca_absent", extra={"backend": current["backend"]})
            return None
        current["public_key"] = data.get("public_key")
        return current

    def delete(self, backend: str, verify: bool = False) -> None:
        """Remove the CA of a mount. Deleting an absent CA succeeds.

        Args:
            backend: Mount path.
            verify: Read the path back afterwards and raise ``DriftError``
                if the CA is still reported.
        """
        logger.info("ssh_ca_delete_started", extra={"backend": backend})
        self._client.delete(ca_path(backend))
        if verify:
            verify_destroyed(self._client, backend)

    def import_state(self, backend: str) -> dict[str, Any] | None:
        """Build state for an existing CA from its mount path alone."""
        return importer.import_state(self, backend)

    def diff(self, state: Mapping[str, Any], inputs: Mapping[str, Any]) -> CaDiff:
        """Compare desired inputs against the last applied state.

        Attributes flagged ``diffed=False`` (``public_key``) are skipped.
        Computed ones (``key_type``, ``key_bits``) only count when set in
        ``inputs``. A change to an immutable attribute is a replacement.
        """
        current = upgrade_state(state)
        config = CaConfig.from_inputs(inputs)
        desired = config.applied_fields()

        changes: list[str] = []
        replaces: list[str] = []
        for attribute in attributes_for_version(SCHEMA_VERSION):
            name = attribute.name
            if not attribute.diffed:
                continue
            if attribute.computed:
                # Unset computed values keep whatever was applied before.
                wanted = getattr(config, name, None)
                if wanted is None or wanted == current.get(name):
                    continue
            elif _normalized(desired.get(name)) == _normalized(current.get(name)):
                continue
            changes.append(name)
            if attribute.immutable:
                replaces.append(name)

        result = CaDiff(changes=tuple(changes), replaces=tuple(replaces))
        logger.debug(
            "ssh_ca_diff_computed",
            extra={"backend": current["backend"], "changes": list(result.changes)},
        )
        return result
