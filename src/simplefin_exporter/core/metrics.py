"""
Prometheus gauges for SimpleFin account balances.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge

from simplefin_exporter.models.account import AccountSet
from simplefin_exporter.models.mapping import AccountMappingConfig

logger = logging.getLogger(__name__)

NAMESPACE = "simplefin"

BALANCE_LABELS = ["domain", "account_name", "account_id", "currency"]
LAST_UPDATED_LABELS = ["domain", "account_name", "account_id"]


class SimplefinMetrics:
    """
    Gauges exported for each SimpleFin account.

    Series are never removed: an account that stops being reported keeps
    its last exported values.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the gauges.

        Args:
            registry: Registry to register the gauges in. If None, a new
                      registry dedicated to this exporter is created.
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self.balance = Gauge(
            "balance",
            "Account balance",
            BALANCE_LABELS,
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.available_balance = Gauge(
            "available_balance",
            "Available account balance",
            BALANCE_LABELS,
            namespace=NAMESPACE,
            registry=self.registry,
        )
        self.last_updated = Gauge(
            "last_updated",
            "Last updated, in Unix epoch seconds as reported by SimpleFin",
            LAST_UPDATED_LABELS,
            namespace=NAMESPACE,
            registry=self.registry,
        )

    def export(self, accounts: AccountSet, mappings: AccountMappingConfig) -> int:
        """
        Update gauges from an account snapshot.

        A balance that fails to parse only skips that one gauge; the rest of
        the account and the rest of the snapshot are still exported.

        Args:
            accounts: Account snapshot from the bridge
            mappings: Display names and ignored accounts

        Returns:
            Number of accounts exported (ignored accounts excluded)
        """
        exported = 0

        for account in accounts.accounts:
            if mappings.is_account_ignored(account.id):
                logger.debug(f"Skipping ignored account: {account.name} (ID: {account.id})")
                continue

            account_name = mappings.get_account_name(account.id, account.name)
            domain = account.domain

            try:
                balance = float(account.balance)
            except ValueError as e:
                logger.error(
                    f"Could not parse balance from {domain} - {account.name} "
                    f"(ID: {account.id}): {e}"
                )
            else:
                self.balance.labels(domain, account_name, account.id, account.currency).set(
                    balance
                )

            try:
                available_balance = float(account.available_balance)
            except ValueError as e:
                logger.error(
                    f"Could not parse available balance from {domain} - {account.name} "
                    f"(ID: {account.id}): {e}"
                )
            else:
                self.available_balance.labels(
                    domain, account_name, account.id, account.currency
                ).set(available_balance)

            self.last_updated.labels(domain, account_name, account.id).set(
                account.balance_date
            )
            exported += 1

        return exported
