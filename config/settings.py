"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # STORAGE
    # ===================
    storage_backend: str = Field(
        default="file",
        pattern="^(memory|file|supabase)$",
        description="Key-value store backend"
    )
    storage_path: str = Field(
        default="data/state.json",
        description="JSON document used by the file backend"
    )
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL (supabase backend only)"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key (supabase backend only)"
    )
    supabase_kv_table: str = Field(
        default="kv_store",
        description="Table holding key/value rows"
    )

    # ===================
    # CATALOG
    # ===================
    seed_data_path: str = Field(
        default="data/products.json",
        description="Static JSON document used to seed an empty catalog"
    )
    placeholder_photo_url: str = Field(
        default="https://placehold.co/800x600/cccccc/ffffff?text=No+Image",
        description="Reference photo used when admin uploads none"
    )

    # ===================
    # INSPECTION
    # ===================
    form_reset_delay_seconds: float = Field(
        default=3.0,
        ge=0,
        le=60,
        description="Delay before the form resets after a successful submission"
    )

    # ===================
    # CRM (BITRIX24)
    # ===================
    crm_webhook_url: str = Field(
        default="https://example.bitrix24.ru/rest/1/webhook-token/",
        description="Bitrix24 inbound webhook base URL (ends with /)"
    )
    crm_target: str = Field(
        default="deal",
        pattern="^(deal|smart_process)$",
        description="CRM entity receiving inspection reports"
    )
    crm_entity_type_id: Optional[int] = Field(
        None,
        ge=1,
        description="Smart-process entityTypeId (smart_process target only)"
    )
    crm_field_batch_number: Optional[str] = Field(
        None,
        description="Custom field holding the batch number"
    )
    crm_field_status: Optional[str] = Field(
        None,
        description="Custom field holding the inspection status"
    )
    crm_field_average_score: Optional[str] = Field(
        None,
        description="Custom field holding the average score"
    )
    crm_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for each CRM HTTP call"
    )
    crm_language: str = Field(
        default="ru",
        pattern="^(ru|en)$",
        description="Language of CRM titles and comments"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    @model_validator(mode="after")
    def check_backend_requirements(self) -> "Settings":
        """Supabase and smart-process targets need their extra settings."""
        if self.storage_backend == "supabase" and not (self.supabase_url and self.supabase_key):
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required for the supabase backend")
        if self.crm_target == "smart_process":
            missing = [
                name for name in (
                    "crm_entity_type_id",
                    "crm_field_batch_number",
                    "crm_field_status",
                    "crm_field_average_score",
                )
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(
                    f"smart_process target requires explicit settings: {', '.join(missing)}"
                )
        return self

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
