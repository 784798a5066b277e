"""
Access URL resolution for the SimpleFin bridge.

An access URL can come from four places, tried in this order:

1. The durable credential store (Kubernetes secret)
2. A volatile file, consumed and deleted on read
3. An explicit URL passed on the command line
4. A one-time setup token, claimed against the bridge

A claimed access URL is written back to the store so later restarts pick
it up from step 1 instead of claiming the (now spent) token again.
"""

import base64
import binascii
import logging
import os
from enum import Enum
from typing import Callable, Dict, Optional
from urllib.parse import urlsplit

import httpx

from simplefin_exporter.core.exceptions import (
    CredentialFileError,
    CredentialStoreError,
    NoCredentialSourceError,
    SetupTokenError,
)
from simplefin_exporter.core.store import CredentialStore
from simplefin_exporter.models.config import ExporterConfig

logger = logging.getLogger(__name__)


class CredentialSource(Enum):
    """Sources an access URL can be resolved from, in priority order."""

    STORE = "store"
    VOLATILE_FILE = "volatile_file"
    EXPLICIT_URL = "explicit_url"
    SETUP_TOKEN = "setup_token"


SOURCE_PRIORITY = (
    CredentialSource.STORE,
    CredentialSource.VOLATILE_FILE,
    CredentialSource.EXPLICIT_URL,
)


def is_valid_access_url(value: str) -> bool:
    """Check that a stored value looks like an access URL rather than junk."""
    return value.startswith("http://") or value.startswith("https://")


def read_and_delete_access_url_file(path: str) -> str:
    """
    Read an access URL from a file and delete the file.

    The file is a single-use drop: it must be read, parsed and removed, or
    the whole operation fails.

    Raises:
        CredentialFileError: If any of the read, parse or delete steps fail
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = f.read()
    except OSError as e:
        raise CredentialFileError(f"error reading access URL file {path}: {e}") from e

    access_url = data.strip()
    try:
        parsed = urlsplit(access_url)
    except ValueError as e:
        raise CredentialFileError(f"error parsing access URL: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise CredentialFileError("error parsing access URL: not an absolute http(s) URL")

    try:
        os.remove(path)
    except OSError as e:
        raise CredentialFileError(f"error removing access URL file {path}: {e}") from e

    return parsed.geturl()


def claim_access_url(setup_token: str, http_client: Optional[httpx.Client] = None) -> str:
    """
    Exchange a setup token for an access URL.

    The token is the base64 encoding of a claim URL. POSTing an empty body
    to it returns the access URL as the response body. A token can only be
    claimed once.

    Raises:
        SetupTokenError: If the token cannot be decoded or the claim fails
    """
    try:
        claim_url = base64.b64decode(setup_token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise SetupTokenError(f"error decoding base64 setup token: {e}") from e

    owns_client = http_client is None
    http_client = http_client or httpx.Client()
    try:
        response = http_client.post(claim_url, content=b"")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise SetupTokenError(f"error requesting access url: {e}") from e
    finally:
        if owns_client:
            http_client.close()

    if response.status_code != 200:
        raise SetupTokenError(
            f"setup token claim failed with status {response.status_code}: {response.text}"
        )

    return response.text


class CredentialResolver:
    """Resolves the SimpleFin access URL from the configured sources."""

    def __init__(
        self,
        config: ExporterConfig,
        store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the resolver.

        Args:
            config: Exporter configuration naming the credential sources
            store: Durable credential store. Only used when the config
                   names both a secret and a namespace.
            http_client: Optional HTTP client for the setup token claim
        """
        self.config = config
        self.store = store if config.store_configured else None
        self.http_client = http_client
        self._strategies: Dict[CredentialSource, Callable[[], Optional[str]]] = {
            CredentialSource.STORE: self._from_store,
            CredentialSource.VOLATILE_FILE: self._from_volatile_file,
            CredentialSource.EXPLICIT_URL: self._from_explicit_url,
            CredentialSource.SETUP_TOKEN: self._from_setup_token,
        }

    def resolve(self) -> str:
        """
        Return the access URL from the highest priority source that has one.

        Raises:
            NoCredentialSourceError: If no source is configured
            CredentialFileError: If the volatile file cannot be consumed
            SetupTokenError: If the setup token cannot be claimed
        """
        for source in SOURCE_PRIORITY:
            access_url = self._strategies[source]()
            if access_url:
                logger.info(f"Using access URL from {source.value}")
                if self.config.setup_token:
                    logger.warning("Access URL and setup token provided, ignoring setup token")
                return access_url

        access_url = self._strategies[CredentialSource.SETUP_TOKEN]()
        if not access_url:
            raise NoCredentialSourceError("Access URL or setup token required")
        return access_url

    def _from_store(self) -> Optional[str]:
        if self.store is None:
            return None

        namespace = self.config.secret_namespace
        name = self.config.secret_name
        try:
            value = self.store.get(namespace, name)
        except CredentialStoreError as e:
            logger.warning(f"Failed to get access URL from secret, trying other sources: {e}")
            return None

        if value is None:
            logger.info(f"No access URL stored in secret {namespace}/{name}")
            return None
        if not is_valid_access_url(value):
            logger.warning(f"Invalid access URL in secret {namespace}/{name}, ignoring it")
            return None
        return value

    def _from_volatile_file(self) -> Optional[str]:
        if not self.config.access_url_file:
            return None
        return read_and_delete_access_url_file(self.config.access_url_file)

    def _from_explicit_url(self) -> Optional[str]:
        return self.config.access_url or None

    def _from_setup_token(self) -> Optional[str]:
        if not self.config.setup_token:
            return None

        access_url = claim_access_url(self.config.setup_token, self.http_client)
        logger.info("Claimed access URL with setup token")

        if self.store is not None:
            try:
                self.store.put(
                    self.config.secret_namespace, self.config.secret_name, access_url
                )
            except CredentialStoreError as e:
                logger.warning(f"Failed to save access URL to secret: {e}")

        return access_url


def resolve_access_url(
    config: ExporterConfig,
    store: Optional[CredentialStore] = None,
    http_client: Optional[httpx.Client] = None,
) -> str:
    """Resolve the access URL for the given configuration."""
    return CredentialResolver(config, store, http_client).resolve()
