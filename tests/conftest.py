"""Shared fixtures: an in-memory SSH engine and real key material."""
from __future__ import annotations

from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from sshca_infra.errors import BackendRejectionError
from sshca_infra.reconciler import SshCaReconciler

CA_SUFFIX = "/config/ca"


def _openssh_public_key(private_key: Any) -> str:
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        )
        .decode("ascii")
    )


def _rsa_key_pair() -> tuple[str, str]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    return pem, _openssh_public_key(private_key)


class FakeVault:
    """Stand-in for the ``config/ca`` endpoint of SSH secrets engine mounts.

    Follows Vault's observable behaviour: only ``public_key`` is ever
    returned, reads of an unconfigured CA return nothing, writes over a configured CA are
    refused, and deletes of an unconfigured CA succeed.
    """

    def __init__(
        self,
        mounts: set[str] | None = None,
        managed_keys: dict[str, str] | None = None,
    ) -> None:
        self.mounts: set[str] = set(mounts or ())
        self.managed_keys: dict[str, str] = dict(managed_keys or {})
        self.cas: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.writes: list[dict[str, Any]] = []

    def _mount(self, path: str) -> str:
        assert path.endswith(CA_SUFFIX), path
        return path[: -len(CA_SUFFIX)]

    def read(self, path: str) -> dict[str, Any] | None:
        self.calls.append(("read", path))
        public_key = self.cas.get(self._mount(path))
        if public_key is None:
            return None
        return {"public_key": public_key}

    def write(self, path: str, data: dict[str, Any]) -> dict[str, Any] | None:
        self.calls.append(("write", path))
        self.writes.append(dict(data))
        mount = self._mount(path)
        if mount not in self.mounts:
            raise BackendRejectionError(path, [f"no handler for route {path!r}"])
        if mount in self.cas:
            raise BackendRejectionError(
                path, ["keys are already configured; delete them before reconfiguring"]
            )

        if data.get("private_key"):
            try:
                private_key = serialization.load_pem_private_key(
                    data["private_key"].encode(), password=None
                )
            except ValueError as e:
                raise BackendRejectionError(path, ["failed to parse private_key"]) from e
            public_key = data.get("public_key") or _openssh_public_key(private_key)
        elif data.get("managed_key_id") or data.get("managed_key_name"):
            ref = data.get("managed_key_id") or data.get("managed_key_name")
            if ref not in self.managed_keys:
                raise BackendRejectionError(path, [f"unable to find managed key {ref!r}"])
            public_key = self.managed_keys[ref]
        elif data.get("generate_signing_key"):
            if data.get("key_type") == "ssh-ed25519":
                public_key = _openssh_public_key(ed25519.Ed25519PrivateKey.generate())
            else:
                public_key = _rsa_key_pair()[1]
        else:
            raise BackendRejectionError(path, ["missing public_key"])

        self.cas[mount] = public_key
        return None

    def delete(self, path: str) -> None:
        self.calls.append(("delete", path))
        self.cas.pop(self._mount(path), None)


@pytest.fixture(scope="session")
def rsa_key_pair() -> tuple[str, str]:
    """A PEM RSA private key and its OpenSSH public key."""
    return _rsa_key_pair()


@pytest.fixture(scope="session")
def managed_public_key() -> str:
    return _rsa_key_pair()[1]


@pytest.fixture
def vault(managed_public_key: str) -> FakeVault:
    return FakeVault(
        mounts={"ssh-abc123", "ssh-xyz"},
        managed_keys={
            "b7a1e0c4-5f0e-4c1b-9d57-3f0a6f1e2d10": managed_public_key,
            "kms-key": managed_public_key,
        },
    )


@pytest.fixture
def reconciler(vault: FakeVault) -> SshCaReconciler:
    return SshCaReconciler(vault)
