"""Tests for translating stack configuration into component arguments."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from sshca_infra.__main__ import SshCaStack
from sshca_infra.config import KeyModeName, StackConfig
from sshca_infra.reconciler import SshCaReconciler

MANAGED_KEY_ID = "b7a1e0c4-5f0e-4c1b-9d57-3f0a6f1e2d10"


def test_generated_mode_args() -> None:
    args = SshCaStack(StackConfig(backend="ssh-abc123")).ca_args()
    assert args.backend == "ssh-abc123"
    assert args.generate_signing_key is True
    assert args.private_key is None
    assert args.create_mount is True


def test_provided_mode_reads_key_file(tmp_path: Path, rsa_key_pair: tuple[str, str]) -> None:
    pem, public_key = rsa_key_pair
    key_file = tmp_path / "ca.pem"
    key_file.write_text(pem, encoding="utf-8")
    config = StackConfig(
        backend="ssh-xyz",
        key_mode=KeyModeName.PROVIDED,
        private_key_file=str(key_file),
        public_key=public_key,
    )
    args = SshCaStack(config).ca_args()
    assert args.private_key == pem
    assert args.public_key == public_key
    assert args.generate_signing_key is None


def test_managed_mode_allows_key_on_mount() -> None:
    config = StackConfig(
        backend="ssh-abc123",
        key_mode=KeyModeName.MANAGED,
        managed_key_name="kms-key",
        key_type="ssh-rsa",
    )
    args = SshCaStack(config).ca_args()
    assert args.managed_key_name == "kms-key"
    assert args.managed_key_id is None
    assert args.allowed_managed_keys == ["kms-key"]
    assert args.key_type == "ssh-rsa"


def test_managed_id_binds_ca_and_name_allows_key_on_mount(
    vault: Any, managed_public_key: str
) -> None:
    config = StackConfig(
        backend="ssh-abc123",
        key_mode=KeyModeName.MANAGED,
        managed_key_id=MANAGED_KEY_ID,
        managed_key_name="kms-key",
    )
    args = SshCaStack(config).ca_args()
    assert args.managed_key_id == MANAGED_KEY_ID
    assert args.managed_key_name is None
    assert args.allowed_managed_keys == ["kms-key"]

    state = SshCaReconciler(vault).create(
        {
            "backend": args.backend,
            "managed_key_id": args.managed_key_id,
            "managed_key_name": args.managed_key_name,
        }
    )
    assert state["public_key"] == managed_public_key
    assert vault.writes[-1] == {"generate_signing_key": False, "managed_key_id": MANAGED_KEY_ID}


def test_managed_id_with_explicit_allowed_keys() -> None:
    config = StackConfig(
        backend="ssh-abc123",
        key_mode=KeyModeName.MANAGED,
        managed_key_id=MANAGED_KEY_ID,
        allowed_managed_keys=["kms-key", "kms-backup"],
    )
    args = SshCaStack(config).ca_args()
    assert args.managed_key_id == MANAGED_KEY_ID
    assert args.allowed_managed_keys == ["kms-key", "kms-backup"]


def test_managed_id_without_names_leaves_mount_unrestricted() -> None:
    config = StackConfig(
        backend="ssh-abc123", key_mode=KeyModeName.MANAGED, managed_key_id=MANAGED_KEY_ID
    )
    assert SshCaStack(config).ca_args().allowed_managed_keys is None
