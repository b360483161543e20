"""Versioned attribute schema and key-mode model for the SSH CA resource.

The CA configuration lives at ``<backend>/config/ca``. Exactly one key
source is configured per mount:

* ``Generated``: Vault generates the signing key pair itself.
* ``Provided``: the caller uploads PEM key material.
* ``Managed``: the key is held by an external managed-key integration and
  referenced by id or name.

Vault only ever reports ``public_key`` back. Everything else is write-only
and is kept authoritative in local state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sshca_infra.errors import CaValidationError
from sshca_infra.keys import derive_public_key

logger: logging.Logger = logging.getLogger(__name__)

SCHEMA_VERSION: int = 1

# Vault's own defaults for CAs configured before key_type/key_bits existed.
LEGACY_KEY_TYPE: str = "ssh-rsa"
LEGACY_KEY_BITS: int = 0

REDACTED: str = "<redacted>"


@dataclass(frozen=True)
class Attribute:
    """Static description of one configurable field."""

    name: str
    type_: type
    required: bool = False
    computed: bool = False
    sensitive: bool = False
    write_only: bool = False
    immutable: bool = False
    diffed: bool = True
    since_version: int = 0
    description: str = ""


ATTRIBUTES: tuple[Attribute, ...] = (
    Attribute(
        "backend",
        str,
        required=True,
        immutable=True,
        description="Path of the SSH secrets engine mount.",
    ),
    Attribute(
        "generate_signing_key",
        bool,
        write_only=True,
        description="Have Vault generate the signing key pair.",
    ),
    Attribute(
        "private_key",
        str,
        sensitive=True,
        write_only=True,
        description="PEM private key of the CA.",
    ),
    Attribute(
        "public_key",
        str,
        computed=True,
        diffed=False,
        description="OpenSSH public key of the CA, as reported by Vault.",
    ),
    Attribute(
        "managed_key_id",
        str,
        write_only=True,
        description="Id of the managed key holding the signing key.",
    ),
    Attribute(
        "managed_key_name",
        str,
        write_only=True,
        description="Name of the managed key holding the signing key.",
    ),
    Attribute(
        "key_type",
        str,
        computed=True,
        since_version=1,
        description="Signing key algorithm.",
    ),
    Attribute(
        "key_bits",
        int,
        computed=True,
        since_version=1,
        description="Signing key size; 0 selects the algorithm's default.",
    ),
)

KEY_MODE_FIELDS: tuple[str, ...] = (
    "generate_signing_key",
    "private_key",
    "managed_key_id",
    "managed_key_name",
)


def attributes_for_version(version: int) -> tuple[Attribute, ...]:
    """Return the attributes recognised by a given schema version."""
    return tuple(a for a in ATTRIBUTES if a.since_version <= version)


def required_fields() -> frozenset[str]:
    return frozenset(a.name for a in ATTRIBUTES if a.required)


def sensitive_fields() -> frozenset[str]:
    return frozenset(a.name for a in ATTRIBUTES if a.sensitive)


def write_only_fields() -> frozenset[str]:
    return frozenset(a.name for a in ATTRIBUTES if a.write_only)


def immutable_fields() -> frozenset[str]:
    return frozenset(a.name for a in ATTRIBUTES if a.immutable)


def redact(record: Mapping[str, Any]) -> dict[str, Any]:
    """Copy ``record`` with every sensitive value replaced, for logs and errors."""
    hidden = sensitive_fields()
    return {k: (REDACTED if k in hidden and v else v) for k, v in record.items()}


def normalize_backend(backend: Any) -> str:
    """Validate a mount path and strip surrounding slashes."""
    if not isinstance(backend, str) or not backend.strip("/ "):
        raise CaValidationError("backend must be a non-empty mount path", ["backend"])
    return backend.strip().strip("/")


@dataclass(frozen=True)
class Generated:
    """Vault generates the signing key pair."""

    def payload(self) -> dict[str, Any]:
        return {"generate_signing_key": True}

    def state_fields(self) -> dict[str, Any]:
        return {
            "generate_signing_key": True,
            "private_key": None,
            "managed_key_id": None,
            "managed_key_name": None,
        }


@dataclass(frozen=True)
class Provided:
    """Caller-supplied PEM key material.

    ``public_key`` may be omitted; it is then derived from the private key
    when the key can be parsed locally.
    """

    private_key: str = field(repr=False)
    public_key: str | None = None

    def payload(self) -> dict[str, Any]:
        public_key = self.public_key or derive_public_key(self.private_key)
        data: dict[str, Any] = {
            "generate_signing_key": False,
            "private_key": self.private_key,
        }
        if public_key:
            data["public_key"] = public_key
        return data

    def state_fields(self) -> dict[str, Any]:
        return {
            "generate_signing_key": False,
            "private_key": self.private_key,
            "managed_key_id": None,
            "managed_key_name": None,
        }


@dataclass(frozen=True)
class Managed:
    """Signing key held by an external managed-key integration."""

    key_id: str | None = None
    key_name: str | None = None

    def __post_init__(self) -> None:
        if bool(self.key_id) == bool(self.key_name):
            raise CaValidationError(
                "exactly one of managed_key_id or managed_key_name must be set",
                ["managed_key_id", "managed_key_name"],
            )

    def payload(self) -> dict[str, Any]:
        if self.key_id:
            return {"generate_signing_key": False, "managed_key_id": self.key_id}
        return {"generate_signing_key": False, "managed_key_name": self.key_name}

    def state_fields(self) -> dict[str, Any]:
        return {
            "generate_signing_key": False,
            "private_key": None,
            "managed_key_id": self.key_id,
            "managed_key_name": self.key_name,
        }


KeyMode = Generated | Provided | Managed


def resolve_key_mode(inputs: Mapping[str, Any]) -> KeyMode:
    """Select the single key mode described by ``inputs``.

    Raises:
        CaValidationError: If no key source, or more than one, is selected.
            ``fields`` names the options involved.
    """
    selected = [name for name in KEY_MODE_FIELDS if inputs.get(name)]
    if not selected:
        raise CaValidationError(
            "one of generate_signing_key, private_key, managed_key_id or "
            "managed_key_name must be set",
            KEY_MODE_FIELDS,
        )
    if len(selected) > 1:
        raise CaValidationError(
            f"conflicting CA key options: {', '.join(selected)}; only one may be set",
            selected,
        )

    choice = selected[0]
    if choice == "generate_signing_key":
        return Generated()
    if choice == "private_key":
        return Provided(
            private_key=str(inputs["private_key"]),
            public_key=inputs.get("public_key") or None,
        )
    if choice == "managed_key_id":
        return Managed(key_id=str(inputs["managed_key_id"]))
    return Managed(key_name=str(inputs["managed_key_name"]))


@dataclass(frozen=True)
class CaConfig:
    """Validated desired configuration of one mount's CA."""

    backend: str
    key_mode: KeyMode
    key_type: str | None = None
    key_bits: int | None = None

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, Any]) -> CaConfig:
        """Validate raw resource inputs.

        Runs before any network call.

        Raises:
            CaValidationError: On a missing required option, an invalid backend,
                conflicting key options or a non-integer
                ``key_bits``.
        """
        missing = sorted(name for name in required_fields() if inputs.get(name) in (None, ""))
        if missing:
            raise CaValidationError(
                f"missing required option(s): {', '.join(missing)}", missing
            )
        backend = normalize_backend(inputs.get("backend"))
        key_mode = resolve_key_mode(inputs)

        key_bits = inputs.get("key_bits")
        if key_bits is not None:
            try:
                key_bits = int(key_bits)
            except (TypeError, ValueError) as e:
                raise CaValidationError(
                    f"key_bits must be an integer, got {key_bits!r}", ["key_bits"]
                ) from e
        return cls(
            backend=backend,
            key_mode=key_mode,
            key_type=inputs.get("key_type") or None,
            key_bits=key_bits,
        )

    def to_payload(self) -> dict[str, Any]:
        """Build the body of the ``config/ca`` write request."""
        data = self.key_mode.payload()
        if self.key_type is not None:
            data["key_type"] = self.key_type
        if self.key_bits is not None:
            data["key_bits"] = self.key_bits
        return data

    def applied_fields(self) -> dict[str, Any]:
        """Values recorded in state after a successful write."""
        record: dict[str, Any] = {"backend": self.backend}
        record.update(self.key_mode.state_fields())
        record["key_type"] = self.key_type if self.key_type is not None else LEGACY_KEY_TYPE
        record["key_bits"] = self.key_bits if self.key_bits is not None else LEGACY_KEY_BITS
        return record
