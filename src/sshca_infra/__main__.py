"""Pulumi stack entry point for the Vault SSH CA."""

from __future__ import annotations

import logging
from pathlib import Path

import pulumi
import structlog

from sshca_infra.config import KeyModeName, StackConfig
from sshca_infra.providers.vault.ssh_ca import VaultSshCa, VaultSshCaArgs

logger: logging.Logger = logging.getLogger(__name__)


class SshCaStack:
    """Provisions an SSH secrets engine mount and its signing CA."""

    def __init__(self, config: StackConfig) -> None:
        """Initialise the stack with resolved configuration."""
        self._config: StackConfig = config

    def ca_args(self) -> VaultSshCaArgs:
        """Translate the stack configuration into component arguments."""
        config = self._config
        args = VaultSshCaArgs(
            backend=config.backend,
            key_type=config.key_type,
            key_bits=config.key_bits,
            create_mount=config.create_mount,
            mount_description=config.mount_description,
        )
        if config.key_mode == KeyModeName.GENERATED:
            args.generate_signing_key = True
        elif config.key_mode == KeyModeName.PROVIDED:
            args.private_key = Path(config.private_key_file).read_text(encoding="utf-8")
            args.public_key = config.public_key or None
        else:
            # The CA binds one reference, the id when both are set.
            if config.managed_key_id:
                args.managed_key_id = config.managed_key_id
            else:
                args.managed_key_name = config.managed_key_name
            allowed = list(config.allowed_managed_keys)
            if config.managed_key_name and config.managed_key_name not in allowed:
                allowed.append(config.managed_key_name)
            args.allowed_managed_keys = allowed or None
        return args

    def run(self) -> None:
        """Provision the stack and export the CA public key."""
        logger.info(
            "stack_run_started",
            extra={"backend": self._config.backend, "key_mode": self._config.key_mode.value},
        )
        ca = VaultSshCa("sshca", self.ca_args())

        pulumi.export("backend", ca.outputs.backend)
        pulumi.export("public_key", ca.outputs.public_key)


if __name__ == "__main__":
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))
    SshCaStack(config=StackConfig.load()).run()
