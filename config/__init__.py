"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    get_store: Function to get the key-value store
    check_storage: Health check function
"""

from config.settings import settings, get_settings, Settings
from config.storage import (
    get_store,
    check_storage,
    reset_store,
    to_storable,
    KeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    SupabaseKeyValueStore,
    PRODUCTS_KEY,
    INSPECTION_FORM_KEY,
    ROLE_KEY,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Storage
    "get_store",
    "check_storage",
    "reset_store",
    "to_storable",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SupabaseKeyValueStore",
    "PRODUCTS_KEY",
    "INSPECTION_FORM_KEY",
    "ROLE_KEY",
]
