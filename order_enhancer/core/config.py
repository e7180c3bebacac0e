from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Address sources tried (in order) when building a customer name from
# first/last name columns.
NAME_PRIORITY_SOURCES = {
    "billing_first": ["billing", "shipping", "customer"],
    "shipping_first": ["shipping", "billing", "customer"],
    "customer_first": ["customer", "billing", "shipping"],
    "billing_only": ["billing"],
    "shipping_only": ["shipping"],
}

DEFAULT_SCHEMA_FILE = Path(__file__).resolve().parent.parent / "registry" / "schemas.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ORDER_ENHANCER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Feature flags
    EXPORT_ENABLED: bool = True
    CONSOLIDATE_ORDERS: bool = True

    # Customer data
    CUSTOMER_NAME_PRIORITY: str = "billing_first"

    # Export settings
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    MAX_FIELD_LENGTH: int = 2000

    # Canonical schema
    SCHEMA_VARIANT: str = "grid_export"
    SCHEMA_FILE: str | None = None  # None -> packaged registry/schemas.yaml

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str | None = None

    @field_validator("CUSTOMER_NAME_PRIORITY", mode="before")
    @classmethod
    def check_name_priority(cls, v: str) -> str:
        value = str(v).strip().lower()
        if value not in NAME_PRIORITY_SOURCES:
            raise ValueError(
                f"Unknown customer name priority '{v}'. "
                f"Expected one of: {', '.join(NAME_PRIORITY_SOURCES)}"
            )
        return value

    @field_validator("MAX_FIELD_LENGTH")
    @classmethod
    def check_max_field_length(cls, v: int) -> int:
        if v < 4:
            raise ValueError("MAX_FIELD_LENGTH must leave room for the '...' marker")
        return v

    def name_sources(self) -> List[str]:
        """Ordered address sources for first/last name construction."""
        return list(NAME_PRIORITY_SOURCES[self.CUSTOMER_NAME_PRIORITY])

    @property
    def schema_path(self) -> Path:
        return Path(self.SCHEMA_FILE) if self.SCHEMA_FILE else DEFAULT_SCHEMA_FILE


def validate_configuration(settings: Settings) -> List[str]:
    """
    Check settings for problems that would make an export useless.

    Returns a list of readable messages; an empty list means the
    configuration is usable.
    """
    # Imported here to keep config importable without the registry
    from order_enhancer.registry.loader import SchemaError, SchemaLoader

    errors: List[str] = []

    if not settings.EXPORT_ENABLED:
        errors.append("Order export enhancement is disabled")

    path = settings.schema_path
    if not path.exists():
        errors.append(f"Schema file not found: {path}")
        return errors

    try:
        registry = SchemaLoader(path).load()
    except SchemaError as e:
        errors.append(f"Schema file is invalid: {e}")
        return errors

    if settings.SCHEMA_VARIANT not in registry.names:
        errors.append(
            f"Schema variant '{settings.SCHEMA_VARIANT}' not defined "
            f"(available: {', '.join(registry.names)})"
        )

    return errors
