"""
SimpleFin bridge exporter server.

Resolves credentials once, serves Prometheus metrics and polls the bridge
on a fixed interval.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Optional

import httpx
from prometheus_client import CollectorRegistry, start_http_server

from simplefin_exporter.core.client import SimplefinClient
from simplefin_exporter.core.credentials import resolve_access_url
from simplefin_exporter.core.exceptions import MetricsServerError, SimplefinError
from simplefin_exporter.core.metrics import SimplefinMetrics
from simplefin_exporter.core.store import CredentialStore, KubernetesSecretStore
from simplefin_exporter.models.config import ExporterConfig
from simplefin_exporter.models.mapping import AccountMappingConfig, load_account_mappings
from simplefin_exporter.utils.duration import format_duration

logger = logging.getLogger(__name__)


class SimplefinExporterServer:
    """Exporter process: credential setup followed by an endless poll loop."""

    def __init__(
        self,
        config: ExporterConfig,
        store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        claim_client: Optional[httpx.Client] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize the server.

        Args:
            config: Exporter configuration
            store: Optional credential store. If None and the config names a
                   secret, a Kubernetes secret store is created.
            http_client: Optional AsyncClient for account requests
            claim_client: Optional Client for the setup token claim
            registry: Optional registry for the exported gauges
        """
        self.config = config
        self.store = store
        self.http_client = http_client
        self.claim_client = claim_client
        self.metrics = SimplefinMetrics(registry)
        self.mappings = AccountMappingConfig()
        self.client: Optional[SimplefinClient] = None

        self._http_server = None
        self._http_thread = None

    @property
    def metrics_port(self) -> Optional[int]:
        """Port the metrics server is bound to, once started."""
        if self._http_server is None:
            return None
        return self._http_server.server_port

    def initialize(self) -> None:
        """
        Resolve credentials, load account mappings and start serving metrics.

        Called once. Every error raised here is fatal to the process.
        """
        store = self.store
        if store is None and self.config.store_configured:
            store = KubernetesSecretStore()

        access_url = resolve_access_url(self.config, store, self.claim_client)

        self.mappings = load_account_mappings(self.config.account_mappings_file)
        if self.mappings.mappings:
            logger.info(f"Loaded {len(self.mappings.mappings)} account mappings")
        if self.mappings.ignore_list:
            logger.info(f"Ignoring {len(self.mappings.ignore_list)} accounts")

        self.client = SimplefinClient(access_url, self.http_client)
        self.start_metrics_server()

    def start_metrics_server(self) -> None:
        """
        Serve the gauges over HTTP on a background thread.

        Raises:
            MetricsServerError: If the address cannot be bound
        """
        address = self.config.bind_address
        port = self.config.port
        try:
            self._http_server, self._http_thread = start_http_server(
                port, addr=address, registry=self.metrics.registry
            )
        except OSError as e:
            raise MetricsServerError(
                f"failed to start metrics server on {address}:{port}: {e}"
            ) from e

        logger.info(f"Serving metrics on {address}:{self.metrics_port}")

    def shutdown(self) -> None:
        """Stop the metrics server if it is running."""
        if self._http_server is None:
            return
        self._http_server.shutdown()
        self._http_server.server_close()
        self._http_thread.join()
        self._http_server = None
        self._http_thread = None

    async def poll_once(self) -> bool:
        """
        Fetch one account snapshot and export it.

        Fetch failures are logged and skip this cycle.

        Returns:
            True if a snapshot was exported
        """
        if self.client is None:
            raise RuntimeError("initialize() must be called before polling")

        logger.info("Polling account data")
        started = time.monotonic()
        exported = False

        try:
            accounts = await self.client.get_accounts()
        except (SimplefinError, httpx.HTTPError) as e:
            logger.error(f"Failed to fetch accounts: {e}")
        else:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(f"Accounts: {accounts.model_dump_json(indent=2)}")
            count = self.metrics.export(accounts, self.mappings)
            logger.info(f"Exported {count} of {len(accounts.accounts)} accounts")
            exported = True

        elapsed = timedelta(seconds=time.monotonic() - started)
        logger.info(f"Done, took {format_duration(elapsed)}")
        return exported

    async def run(self) -> None:  # pragma: no cover
        """Poll forever. The sleep does not account for time spent polling."""
        interval = self.config.update_interval
        logger.info(f"Update interval: {format_duration(interval)}")

        while True:
            await self.poll_once()
            await asyncio.sleep(interval.total_seconds())


async def run_server(config: ExporterConfig) -> None:  # pragma: no cover
    """
    Run the SimpleFin exporter.

    Args:
        config: Exporter configuration built from the command line
    """
    server = SimplefinExporterServer(config)
    server.initialize()
    try:
        await server.run()
    finally:
        server.shutdown()
