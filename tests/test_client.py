"""Tests for the hvac-backed logical client facade."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath, InvalidRequest
from pydantic import SecretStr

from sshca_infra.client import HvacLogicalClient, ca_path
from sshca_infra.config import VaultSettings
from sshca_infra.errors import BackendRejectionError


def test_ca_path_strips_slashes() -> None:
    assert ca_path("ssh-abc123") == "ssh-abc123/config/ca"
    assert ca_path("/team/ssh/") == "team/ssh/config/ca"


def test_read_unwraps_data() -> None:
    hvac_client = MagicMock()
    hvac_client.read.return_value = {
        "request_id": "1",
        "data": {"public_key": "ssh-rsa AAAA"},
    }
    assert HvacLogicalClient(hvac_client).read("ssh/config/ca") == {"public_key": "ssh-rsa AAAA"}
    hvac_client.read.assert_called_once_with("ssh/config/ca")


@pytest.mark.parametrize("response", [None, {"data": {}}, {"data": None}])
def test_read_without_content_is_none(response: object) -> None:
    hvac_client = MagicMock()
    hvac_client.read.return_value = response
    assert HvacLogicalClient(hvac_client).read("ssh/config/ca") is None


def test_write_sends_payload() -> None:
    hvac_client = MagicMock()
    hvac_client.write_data.return_value = None
    HvacLogicalClient(hvac_client).write("ssh/config/ca", {"generate_signing_key": True})
    hvac_client.write_data.assert_called_once_with(
        "ssh/config/ca", data={"generate_signing_key": True}
    )


def test_invalid_request_becomes_backend_rejection() -> None:
    hvac_client = MagicMock()
    hvac_client.write_data.side_effect = InvalidRequest(
        "bad request", errors=["failed to parse private_key"]
    )
    with pytest.raises(BackendRejectionError) as excinfo:
        HvacLogicalClient(hvac_client).write("ssh/config/ca", {"private_key": "x"})
    assert excinfo.value.path == "ssh/config/ca"
    assert excinfo.value.errors == ("failed to parse private_key",)
    assert "failed to parse private_key" in str(excinfo.value)


def test_invalid_request_without_errors_keeps_message() -> None:
    hvac_client = MagicMock()
    hvac_client.write_data.side_effect = InvalidRequest("keys are already configured")
    with pytest.raises(BackendRejectionError) as excinfo:
        HvacLogicalClient(hvac_client).write("ssh/config/ca", {"generate_signing_key": True})
    assert any("keys are already configured" in e for e in excinfo.value.errors)


def test_forbidden_propagates_unchanged() -> None:
    hvac_client = MagicMock()
    hvac_client.write_data.side_effect = Forbidden("permission denied")
    with pytest.raises(Forbidden):
        HvacLogicalClient(hvac_client).write("ssh/config/ca", {"generate_signing_key": True})


def test_delete_of_missing_path_succeeds() -> None:
    hvac_client = MagicMock()
    hvac_client.delete.side_effect = InvalidPath("not found")
    HvacLogicalClient(hvac_client).delete("ssh/config/ca")
    hvac_client.delete.assert_called_once_with("ssh/config/ca")


def test_from_settings_builds_hvac_client() -> None:
    settings = VaultSettings(
        addr="https://vault.example.com:8200",
        token=SecretStr("s.token"),
        namespace="admin",
        timeout=10,
    )
    with patch("sshca_infra.client.hvac.Client") as client_cls:
        HvacLogicalClient.from_settings(settings)
    client_cls.assert_called_once_with(
        url="https://vault.example.com:8200",
        token="s.token",
        namespace="admin",
        verify=True,
        timeout=10,
    )


def test_from_settings_prefers_ca_cert_for_verification() -> None:
    settings = VaultSettings(ca_cert="/etc/ssl/vault-ca.pem", skip_verify=True)
    with patch("sshca_infra.client.hvac.Client") as client_cls:
        HvacLogicalClient.from_settings(settings)
    assert client_cls.call_args.kwargs["verify"] == "/etc/ssl/vault-ca.pem"
