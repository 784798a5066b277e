"""
Account mapping policy: custom display names and ignored accounts.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from simplefin_exporter.core.exceptions import AccountMappingsError

logger = logging.getLogger(__name__)


class AccountMapping(BaseModel):
    """Maps an account ID to a custom display name."""

    model_config = {"strict": True, "populate_by_name": True}

    account_id: str
    custom_name: str


class AccountMappingConfig(BaseModel):
    """
    Account mappings and ignore list loaded from the mappings file.

    Loaded once at startup and only read afterwards.
    """

    model_config = {"strict": True, "populate_by_name": True, "frozen": True}

    mappings: List[AccountMapping] = Field(default_factory=list)
    ignore_list: List[str] = Field(default_factory=list)

    @field_validator("mappings", "ignore_list", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        """Treat a null section as an empty list."""
        return [] if value is None else value

    def get_account_name(self, account_id: str, fallback: str) -> str:
        """Return the custom name for an account ID, or the fallback if unmapped."""
        for mapping in self.mappings:
            if mapping.account_id == account_id:
                return mapping.custom_name
        return fallback

    def is_account_ignored(self, account_id: str) -> bool:
        """Check if an account ID should be excluded from metrics."""
        for ignored_id in self.ignore_list:
            if ignored_id == account_id:
                return True
        return False


def load_account_mappings(path: Optional[Union[str, Path]]) -> AccountMappingConfig:
    """
    Load account mappings from a JSON file.

    Args:
        path: Path to the mappings file. Empty or None disables mappings.

    Returns:
        The loaded mappings, or an empty config when no file is configured
        or the file does not exist.

    Raises:
        AccountMappingsError: If the file exists but cannot be read or parsed
    """
    if not path:
        return AccountMappingConfig()

    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        logger.info(f"Account mappings file {path} not found, using no mappings")
        return AccountMappingConfig()
    except OSError as e:
        raise AccountMappingsError(f"error reading account mappings file: {e}") from e

    try:
        config = AccountMappingConfig.model_validate_json(data)
    except ValidationError as e:
        raise AccountMappingsError(f"error parsing account mappings JSON: {e}") from e

    counts = Counter(mapping.account_id for mapping in config.mappings)
    for account_id, count in counts.items():
        if count > 1:
            logger.warning(
                f"Account {account_id} is mapped {count} times, using the first mapping"
            )

    return config
