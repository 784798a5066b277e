"""
Unit tests for the Kubernetes secret credential store.
"""

import base64
import logging
from unittest.mock import MagicMock

import pytest
import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from simplefin_exporter.core.exceptions import CredentialStoreError
from simplefin_exporter.core.store import ACCESS_URL_KEY, KubernetesSecretStore

ACCESS_URL = "https://user:pw@bridge.example/simplefin"


def encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def make_secret(data=None) -> client.V1Secret:
    return client.V1Secret(
        metadata=client.V1ObjectMeta(name="simplefin", namespace="monitoring"),
        data=data,
    )


@pytest.fixture
def api() -> MagicMock:
    return MagicMock()


@pytest.fixture
def store(api) -> KubernetesSecretStore:
    return KubernetesSecretStore(api=api)


class TestGet:
    """Tests for reading the access URL."""

    def test_returns_decoded_value(self, store, api):
        api.read_namespaced_secret.return_value = make_secret({ACCESS_URL_KEY: encode(ACCESS_URL)})

        assert store.get("monitoring", "simplefin") == ACCESS_URL
        api.read_namespaced_secret.assert_called_once_with(
            name="simplefin", namespace="monitoring"
        )

    def test_missing_key_returns_none(self, store, api):
        api.read_namespaced_secret.return_value = make_secret({"other": encode("x")})
        assert store.get("monitoring", "simplefin") is None

    def test_empty_secret_returns_none(self, store, api):
        api.read_namespaced_secret.return_value = make_secret(None)
        assert store.get("monitoring", "simplefin") is None

    def test_missing_secret_returns_none_quietly(self, store, api, caplog):
        api.read_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")

        with caplog.at_level(logging.WARNING):
            assert store.get("monitoring", "simplefin") is None
        assert caplog.text == ""

    def test_api_error_raises(self, store, api):
        api.read_namespaced_secret.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(CredentialStoreError, match="403 Forbidden"):
            store.get("monitoring", "simplefin")

    def test_unreachable_api_raises(self, store, api):
        api.read_namespaced_secret.side_effect = urllib3.exceptions.MaxRetryError(
            None, "/api/v1/namespaces/monitoring/secrets/simplefin"
        )

        with pytest.raises(CredentialStoreError, match="failed to reach Kubernetes API"):
            store.get("monitoring", "simplefin")

    def test_undecodable_value_raises(self, store, api):
        api.read_namespaced_secret.return_value = make_secret({ACCESS_URL_KEY: "%%%"})

        with pytest.raises(CredentialStoreError, match="undecodable"):
            store.get("monitoring", "simplefin")


class TestPut:
    """Tests for writing the access URL."""

    def test_updates_existing_secret_keeping_other_keys(self, store, api):
        secret = make_secret({"other": encode("keep me")})
        api.read_namespaced_secret.return_value = secret

        store.put("monitoring", "simplefin", ACCESS_URL)

        api.replace_namespaced_secret.assert_called_once_with(
            name="simplefin", namespace="monitoring", body=secret
        )
        assert secret.data == {"other": encode("keep me"), ACCESS_URL_KEY: encode(ACCESS_URL)}

    def test_initializes_empty_secret_data(self, store, api):
        secret = make_secret(None)
        api.read_namespaced_secret.return_value = secret

        store.put("monitoring", "simplefin", ACCESS_URL)

        assert secret.data == {ACCESS_URL_KEY: encode(ACCESS_URL)}
        api.replace_namespaced_secret.assert_called_once()

    def test_creates_missing_secret(self, store, api):
        api.read_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")

        store.put("monitoring", "simplefin", ACCESS_URL)

        api.replace_namespaced_secret.assert_not_called()
        _, kwargs = api.create_namespaced_secret.call_args
        assert kwargs["namespace"] == "monitoring"
        assert kwargs["body"].metadata.name == "simplefin"
        assert kwargs["body"].data == {ACCESS_URL_KEY: encode(ACCESS_URL)}

    def test_read_failure_raises(self, store, api):
        api.read_namespaced_secret.side_effect = ApiException(status=500, reason="Server Error")

        with pytest.raises(CredentialStoreError, match="for update"):
            store.put("monitoring", "simplefin", ACCESS_URL)
        api.replace_namespaced_secret.assert_not_called()

    def test_write_failure_raises(self, store, api):
        api.read_namespaced_secret.return_value = make_secret({})
        api.replace_namespaced_secret.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(CredentialStoreError, match="409 Conflict"):
            store.put("monitoring", "simplefin", ACCESS_URL)

    def test_round_trip_through_secret(self, store, api):
        """Test that a value written with put is what get returns."""
        secret = make_secret(None)
        api.read_namespaced_secret.return_value = secret

        store.put("monitoring", "simplefin", ACCESS_URL)
        assert store.get("monitoring", "simplefin") == ACCESS_URL
