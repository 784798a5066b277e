"""
Durable storage for the SimpleFin access URL.

The access URL is kept in a Kubernetes secret so that a setup token only
ever has to be claimed once per deployment.
"""

import base64
import logging
from typing import Any, Optional, Protocol

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from simplefin_exporter.core.exceptions import CredentialStoreError

logger = logging.getLogger(__name__)

ACCESS_URL_KEY = "access_url"


class CredentialStore(Protocol):
    """Protocol for stores able to hold a single named access URL."""

    def get(self, namespace: str, name: str) -> Optional[str]:
        """
        Return the stored access URL, or ``None`` when it is missing.

        Read failures raise ``CredentialStoreError``; callers treat them as
        a missing value.
        """

    def put(self, namespace: str, name: str, value: str) -> None:
        """Store the access URL, raising ``CredentialStoreError`` on failure."""


class KubernetesSecretStore:
    """Credential store backed by a Kubernetes secret's ``access_url`` key."""

    def __init__(self, api: Optional[Any] = None):
        """
        Initialize the store.

        Args:
            api: Optional CoreV1Api instance. If None, one is built from the
                 in-cluster configuration, falling back to the local kubeconfig.

        Raises:
            CredentialStoreError: If no Kubernetes configuration is available
        """
        if api is None:
            api = client.CoreV1Api(_load_api_client())
        self.api = api

    def get(self, namespace: str, name: str) -> Optional[str]:
        """
        Read the access URL from the secret.

        A missing secret or key is expected on first run and returns None.

        Raises:
            CredentialStoreError: If the secret cannot be read or decoded
        """
        try:
            secret = self.api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise CredentialStoreError(
                f"failed to read secret {namespace}/{name}: {e.status} {e.reason}"
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise CredentialStoreError(
                f"failed to reach Kubernetes API for secret {namespace}/{name}: {e}"
            ) from e

        encoded = (secret.data or {}).get(ACCESS_URL_KEY)
        if encoded is None:
            return None

        try:
            return base64.b64decode(encoded, validate=True).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise CredentialStoreError(
                f"secret {namespace}/{name} holds an undecodable access URL: {e}"
            ) from e

    def put(self, namespace: str, name: str, value: str) -> None:
        """
        Write the access URL into the secret, keeping any other keys.

        This is a read-modify-write, not a compare-and-swap; the last
        writer wins. A missing secret is created.

        Raises:
            CredentialStoreError: If the secret cannot be read or written
        """
        encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")

        try:
            secret = self.api.read_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status != 404:
                raise CredentialStoreError(
                    f"failed to get secret {namespace}/{name} for update: {e.status} {e.reason}"
                ) from e
            secret = None
        except urllib3.exceptions.HTTPError as e:
            raise CredentialStoreError(
                f"failed to reach Kubernetes API for secret {namespace}/{name}: {e}"
            ) from e

        try:
            if secret is None:
                body = client.V1Secret(
                    metadata=client.V1ObjectMeta(name=name, namespace=namespace),
                    data={ACCESS_URL_KEY: encoded},
                )
                self.api.create_namespaced_secret(namespace=namespace, body=body)
                logger.info(f"Created secret {namespace}/{name} with access URL")
                return

            if secret.data is None:
                secret.data = {}
            secret.data[ACCESS_URL_KEY] = encoded
            self.api.replace_namespaced_secret(name=name, namespace=namespace, body=secret)
        except ApiException as e:
            raise CredentialStoreError(
                f"failed to update secret {namespace}/{name} with access URL: "
                f"{e.status} {e.reason}"
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise CredentialStoreError(
                f"failed to reach Kubernetes API for secret {namespace}/{name}: {e}"
            ) from e

        logger.info(f"Saved access URL to secret {namespace}/{name}")


def _load_api_client() -> client.ApiClient:
    """Build a Kubernetes API client from in-cluster or local configuration."""
    try:
        config.load_incluster_config()
    except ConfigException:
        try:
            config.load_kube_config()
        except ConfigException as e:
            raise CredentialStoreError(
                f"failed to create kubernetes client: {e}"
            ) from e
        logger.debug("Using local kubeconfig for secret access")
    return client.ApiClient()
