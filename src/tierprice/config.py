"""Configuration management for the tier price service."""

import logging
from pathlib import Path
from typing import Optional

import pycountry
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class TierPriceConfig(BaseSettings):
    """Configuration for tier price reconciliation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    link_field: str = Field(
        default="entity_id",
        min_length=1,
        description="Storage column correlating a price row to its product entity",
    )

    customer_groups: str = Field(
        default="0,1,2,3",
        description="Comma-separated customer group ids accepted in tier prices",
    )

    allowed_price_lists: str = Field(
        default="EUR,USD",
        description="Comma-separated ISO 4217 codes usable as price list scope",
    )

    snapshot_path: Optional[Path] = Field(
        default=None,
        description="JSON catalog snapshot seeding the in-memory stores",
    )

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
    )

    api_port: int = Field(
        default=8000,
        description="API port",
    )

    api_keys: str = Field(
        default="",
        description="Comma-separated API keys for authentication",
    )

    dev_bypass_api_key: bool = Field(
        default=False,
        description="Bypass API key verification for local development only",
    )

    rate_limit: str = Field(
        default="60/minute",
        description="slowapi rate limit applied to tier price endpoints",
    )

    @field_validator("allowed_price_lists")
    @classmethod
    def validate_price_lists_format(cls, v: str) -> str:
        """Validate price lists are valid ISO 4217 codes."""
        if not v:
            raise ValueError("ALLOWED_PRICE_LISTS cannot be empty")

        codes = [c.strip().upper() for c in v.split(",") if c.strip()]

        if not codes:
            raise ValueError("ALLOWED_PRICE_LISTS cannot be empty")

        for code in codes:
            if len(code) != 3 or not code.isalpha():
                raise ValueError(
                    f"Invalid price list code format: '{code}'. "
                    f"Must be 3-letter ISO 4217 codes (e.g., USD, EUR)."
                )

        valid_iso_codes = {c.alpha_3 for c in pycountry.currencies}
        invalid = set(codes) - valid_iso_codes
        if invalid:
            raise ValueError(
                f"Invalid ISO 4217 codes: {', '.join(sorted(invalid))}. "
                f"See https://en.wikipedia.org/wiki/ISO_4217"
            )

        return v

    @field_validator("customer_groups")
    @classmethod
    def validate_customer_groups_format(cls, v: str) -> str:
        for item in v.split(","):
            item = item.strip()
            if item and not item.isdigit():
                raise ValueError(f"Invalid customer group id: '{item}'")
        return v

    def get_allowed_price_lists(self) -> set[str]:
        """Parse allowed price lists from comma-separated string."""
        return {
            c.strip().upper() for c in self.allowed_price_lists.split(",") if c.strip()
        }

    def get_customer_groups(self) -> set[int]:
        return {int(g) for g in self.customer_groups.split(",") if g.strip()}

    def get_api_keys(self) -> set[str]:
        return {k.strip() for k in self.api_keys.split(",") if k.strip()}

    def validate_config(self) -> None:
        """Validate configuration at startup. Raises ValueError if invalid."""
        errors = []

        if not self.get_customer_groups():
            errors.append("CUSTOMER_GROUPS cannot be empty")

        if not self.link_field.strip() or not self.link_field.isidentifier():
            errors.append("LINK_FIELD must be a plain column name")

        if self.snapshot_path is not None and not self.snapshot_path.exists():
            errors.append(f"SNAPSHOT_PATH does not exist: {self.snapshot_path}")

        if self.api_port < 1 or self.api_port > 65535:
            errors.append("API_PORT must be between 1 and 65535")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )


_config_instance = None


def get_config() -> TierPriceConfig:
    """Get or create global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = TierPriceConfig()
        _config_instance.validate_config()
        logger.info("Configuration validated successfully")
    return _config_instance


def reload_config() -> TierPriceConfig:
    """Reload configuration (useful for testing)."""
    global _config_instance
    _config_instance = TierPriceConfig()
    return _config_instance
