"""Vault SSH secrets engine CA, as a Pulumi dynamic resource and component."""

from __future__ import annotations

import logging
from typing import Any

import pulumi
import pulumi_vault as vault
from pulumi.dynamic import (
    CheckFailure,
    CheckResult,
    CreateResult,
    DiffResult,
    ReadResult,
    Resource,
    ResourceProvider,
    UpdateResult,
)

from sshca_infra.client import HvacLogicalClient, LogicalClient
from sshca_infra.components.ssh_ca import SshCaOutputs
from sshca_infra.errors import CaValidationError
from sshca_infra.reconciler import SshCaReconciler
from sshca_infra.schema import CaConfig, redact

logger: logging.Logger = logging.getLogger(__name__)


def _strip_internal(values: dict[str, Any] | None) -> dict[str, Any]:
    """Drop engine bookkeeping keys such as ``__provider``."""
    return {k: v for k, v in (values or {}).items() if not k.startswith("__")}


class SshSecretBackendCaProvider(ResourceProvider):
    """Dynamic provider reconciling ``<backend>/config/ca``.

    The Vault client is created on first use from ``VaultSettings`` so the
    provider can be serialized into the Pulumi state. Tests pass a client in.
    """

    def __init__(self, client: LogicalClient | None = None) -> None:
        self._client: LogicalClient | None = client

    def _reconciler(self) -> SshCaReconciler:
        if self._client is None:
            self._client = HvacLogicalClient.from_settings()
        return SshCaReconciler(self._client)

    def check(self, _olds: dict[str, Any], news: dict[str, Any]) -> CheckResult:
        try:
            CaConfig.from_inputs(_strip_internal(news))
        except CaValidationError as e:
            logger.warning(
                "ssh_ca_check_failed", extra={"fields": list(e.fields), "reason": str(e)}
            )
            failures = [CheckFailure(name, str(e)) for name in e.fields or ("backend",)]
            return CheckResult(news, failures)
        return CheckResult(news, [])

    def diff(self, _id: str, _olds: dict[str, Any], _news: dict[str, Any]) -> DiffResult:
        result = self._reconciler().diff(_strip_internal(_olds), _strip_internal(_news))
        return DiffResult(
            changes=not result.empty,
            replaces=list(result.replaces),
            stables=[] if result.replaces else ["backend"],
        )

    def create(self, props: dict[str, Any]) -> CreateResult:
        state = self._reconciler().create(_strip_internal(props))
        return CreateResult(id_=state["backend"], outs=state)

    def read(self, id_: str, props: dict[str, Any]) -> ReadResult:
        reconciler = self._reconciler()
        current = _strip_internal(props)
        if current.get("backend"):
            state = reconciler.read(current)
        else:
            state = reconciler.import_state(id_)
        if state is None:
            return ReadResult(None, {})
        logger.debug("ssh_ca_read", extra=redact(state))
        return ReadResult(state["backend"], state)

    def update(self, _id: str, _olds: dict[str, Any], _news: dict[str, Any]) -> UpdateResult:
        state = self._reconciler().update(_strip_internal(_olds), _strip_internal(_news))
        return UpdateResult(outs=state)

    def delete(self, _id: str, props: dict[str, Any]) -> None:
        backend = _strip_internal(props).get("backend") or _id
        self._reconciler().delete(backend, verify=True)


class SshSecretBackendCaArgs:
    """Inputs of ``SshSecretBackendCa``.

    Exactly one of ``generate_signing_key``, ``private_key``,
    ``managed_key_id`` or ``managed_key_name`` must be set.

    Args:
        backend: Path of the SSH secrets engine mount.
        generate_signing_key: Have Vault generate the key pair.
        private_key: PEM private key to upload; stored as a secret.
        public_key: Public half of ``private_key``; derived when omitted.
        managed_key_id: Id of a managed key holding the signing key.
        managed_key_name: Name of a managed key holding the signing key.
        key_type: Signing key algorithm, e.g. ``ssh-rsa`` or ``ssh-ed25519``.
        key_bits: Signing key size; 0 selects the algorithm's default.
    """

    def __init__(
        self,
        backend: pulumi.Input[str],
        generate_signing_key: pulumi.Input[bool] | None = None,
        private_key: pulumi.Input[str] | None = None,
        public_key: pulumi.Input[str] | None = None,
        managed_key_id: pulumi.Input[str] | None = None,
        managed_key_name: pulumi.Input[str] | None = None,
        key_type: pulumi.Input[str] | None = None,
        key_bits: pulumi.Input[int] | None = None,
    ) -> None:
        self.backend: pulumi.Input[str] = backend
        self.generate_signing_key: pulumi.Input[bool] | None = generate_signing_key
        self.private_key: pulumi.Input[str] | None = private_key
        self.public_key: pulumi.Input[str] | None = public_key
        self.managed_key_id: pulumi.Input[str] | None = managed_key_id
        self.managed_key_name: pulumi.Input[str] | None = managed_key_name
        self.key_type: pulumi.Input[str] | None = key_type
        self.key_bits: pulumi.Input[int] | None = key_bits


class SshSecretBackendCa(Resource):
    """CA configuration of one SSH secrets engine mount."""

    backend: pulumi.Output[str]
    public_key: pulumi.Output[str]
    key_type: pulumi.Output[str]
    key_bits: pulumi.Output[int]
    schema_version: pulumi.Output[int]

    def __init__(
        self,
        name: str,
        args: SshSecretBackendCaArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        private_key = (
            pulumi.Output.secret(args.private_key) if args.private_key is not None else None
        )
        super().__init__(
            SshSecretBackendCaProvider(),
            name,
            {
                "backend": args.backend,
                "generate_signing_key": args.generate_signing_key,
                "private_key": private_key,
                "public_key": args.public_key,
                "managed_key_id": args.managed_key_id,
                "managed_key_name": args.managed_key_name,
                "key_type": args.key_type,
                "key_bits": args.key_bits,
                "schema_version": None,
            },
            pulumi.ResourceOptions.merge(
                opts, pulumi.ResourceOptions(additional_secret_outputs=["private_key"])
            ),
        )


class VaultSshCaArgs:
    """Arguments for the Vault SSH CA component.

    Args:
        backend: Mount path of the SSH secrets engine.
        generate_signing_key: See ``SshSecretBackendCaArgs``; the key source
            and algorithm arguments are passed through unchanged.
        create_mount: Mount the engine at ``backend`` as part of the component.
        mount_description: Description of the mount when created here.
        allowed_managed_keys: Managed key names the mount may use.
    """

    def __init__(
        self,
        backend: pulumi.Input[str],
        generate_signing_key: pulumi.Input[bool] | None = None,
        private_key: pulumi.Input[str] | None = None,
        public_key: pulumi.Input[str] | None = None,
        managed_key_id: pulumi.Input[str] | None = None,
        managed_key_name: pulumi.Input[str] | None = None,
        key_type: pulumi.Input[str] | None = None,
        key_bits: pulumi.Input[int] | None = None,
        create_mount: bool = True,
        mount_description: str = "SSH secret backend",
        allowed_managed_keys: list[pulumi.Input[str]] | None = None,
    ) -> None:
        self.backend: pulumi.Input[str] = backend
        self.generate_signing_key: pulumi.Input[bool] | None = generate_signing_key
        self.private_key: pulumi.Input[str] | None = private_key
        self.public_key: pulumi.Input[str] | None = public_key
        self.managed_key_id: pulumi.Input[str] | None = managed_key_id
        self.managed_key_name: pulumi.Input[str] | None = managed_key_name
        self.key_type: pulumi.Input[str] | None = key_type
        self.key_bits: pulumi.Input[int] | None = key_bits
        self.create_mount: bool = create_mount
        self.mount_description: str = mount_description
        self.allowed_managed_keys: list[pulumi.Input[str]] | None = allowed_managed_keys


class VaultSshCa(pulumi.ComponentResource):
    """Vault SSH signing CA satisfying ``SshCa``.

    Optionally mounts an ``ssh`` secrets engine, then configures its CA.
    The CA resource depends on the mount through the mount's ``path`` output.
    """

    def __init__(
        self,
        name: str,
        args: VaultSshCaArgs,
        opts: pulumi.ResourceOptions | None = None,
    ) -> None:
        """Initialise and provision the Vault SSH CA component.

        Args:
            name: Logical Pulumi resource name.
            args: Mount and key source arguments.
            opts: Optional Pulumi resource options.
        """
        super().__init__("sshca:vault:SshCa", name, {}, opts)

        logger.debug("provisioning_vault_ssh_ca", extra={"name": name})

        backend: pulumi.Input[str] = args.backend
        if args.create_mount:
            mount = vault.Mount(
                f"{name}-mount",
                path=args.backend,
                type="ssh",
                description=args.mount_description,
                allowed_managed_keys=args.allowed_managed_keys,
                opts=pulumi.ResourceOptions(parent=self),
            )
            backend = mount.path

        ca = SshSecretBackendCa(
            f"{name}-ca",
            SshSecretBackendCaArgs(
                backend=backend,
                generate_signing_key=args.generate_signing_key,
                private_key=args.private_key,
                public_key=args.public_key,
                managed_key_id=args.managed_key_id,
                managed_key_name=args.managed_key_name,
                key_type=args.key_type,
                key_bits=args.key_bits,
            ),
            opts=pulumi.ResourceOptions(parent=self),
        )

        self._outputs: SshCaOutputs = SshCaOutputs(
            backend=ca.backend,
            public_key=ca.public_key,
        )

        self.register_outputs(
            {
                "backend": self._outputs.backend,
                "public_key": self._outputs.public_key,
            }
        )

    @property
    def outputs(self) -> SshCaOutputs:
        """Return the resolved SSH CA outputs."""
        return self._outputs
