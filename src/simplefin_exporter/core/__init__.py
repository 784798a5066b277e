"""
Core functionality for the SimpleFin exporter.

Submodules are imported by their full path; only the exception types are
re-exported here so that the models package can depend on them.
"""

from simplefin_exporter.core.exceptions import (
    AccountMappingsError,
    ConfigurationError,
    CredentialError,
    CredentialFileError,
    CredentialStoreError,
    MetricsServerError,
    NoCredentialSourceError,
    SetupTokenError,
    SimplefinError,
    SimplefinExporterError,
)

__all__ = [
    "AccountMappingsError",
    "ConfigurationError",
    "CredentialError",
    "CredentialFileError",
    "CredentialStoreError",
    "MetricsServerError",
    "NoCredentialSourceError",
    "SetupTokenError",
    "SimplefinError",
    "SimplefinExporterError",
]
