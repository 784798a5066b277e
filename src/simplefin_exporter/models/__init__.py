"""
Pydantic models for SimpleFin exporter data structures.
"""

from simplefin_exporter.models.account import Account, AccountSet, Organization
from simplefin_exporter.models.config import ExporterConfig
from simplefin_exporter.models.mapping import (
    AccountMapping,
    AccountMappingConfig,
    load_account_mappings,
)

__all__ = [
    "Account",
    "AccountSet",
    "Organization",
    "ExporterConfig",
    "AccountMapping",
    "AccountMappingConfig",
    "load_account_mappings",
]
