"""
Custom exceptions for the SimpleFin bridge exporter.
"""


class SimplefinExporterError(Exception):
    """Base exception for SimpleFin exporter errors."""
    pass


class ConfigurationError(SimplefinExporterError):
    """Raised when exporter settings are invalid."""
    pass


class AccountMappingsError(ConfigurationError):
    """Raised when the account mappings file cannot be read or parsed."""
    pass


class CredentialError(SimplefinExporterError):
    """Raised when no usable access URL can be obtained."""
    pass


class NoCredentialSourceError(CredentialError):
    """Raised when neither an access URL nor a setup token is available."""
    pass


class CredentialFileError(CredentialError):
    """Raised when the volatile access URL file cannot be consumed."""
    pass


class SetupTokenError(CredentialError):
    """Raised when a setup token cannot be decoded or claimed."""
    pass


class CredentialStoreError(SimplefinExporterError):
    """Raised when the durable credential store cannot be reached or updated."""
    pass


class SimplefinError(SimplefinExporterError):
    """Raised when the SimpleFin bridge returns an unusable response."""
    pass


class MetricsServerError(SimplefinExporterError):
    """Raised when the metrics HTTP server cannot be started."""
    pass
