"""
Account models for SimpleFin bridge data.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class Organization(BaseModel):
    """Institution holding an account, as reported by the bridge."""

    model_config = {"strict": True, "populate_by_name": True}

    domain: Optional[str] = None
    name: Optional[str] = None
    sfin_url: Optional[str] = Field(default=None, alias="sfin-url")


class Account(BaseModel):
    """
    Represents a single account from a SimpleFin account set.

    Balances are kept as the decimal strings the bridge sends. Converting
    them is left to the metrics exporter so that one malformed balance
    does not invalidate the whole snapshot.
    """

    model_config = {"strict": True, "populate_by_name": True}

    # Required fields
    id: str
    name: str
    currency: str
    balance: str
    balance_date: int = Field(alias="balance-date")

    org: Organization = Field(default_factory=Organization)
    available_balance: str = Field(default="", alias="available-balance")

    @property
    def domain(self) -> str:
        """Organization domain, or an empty string when not reported."""
        return self.org.domain or ""


class AccountSet(BaseModel):
    """Snapshot of accounts returned by one call to the bridge."""

    model_config = {"strict": True, "populate_by_name": True}

    accounts: List[Account] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
