"""Local helpers for SSH CA key material."""

from __future__ import annotations

import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

logger: logging.Logger = logging.getLogger(__name__)


def derive_public_key(private_key_pem: str) -> str | None:
    """Return the OpenSSH public key matching a PEM private key.

    Returns ``None`` when the key cannot be parsed locally; Vault then
    receives the material unchanged and reports the rejection itself.
    """
    try:
        private_key = serialization.load_pem_private_key(
            private_key_pem.encode("utf-8"), password=None
        )
        public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        )
    except (ValueError, TypeError, UnsupportedAlgorithm):
        logger.debug("public_key_derivation_skipped")
        return None
    return public_bytes.decode("ascii")
