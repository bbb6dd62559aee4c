"""
Client preference persistence (current role).
"""

from typing import Optional

import structlog

from config import get_store, KeyValueStore, ROLE_KEY
from models.preferences import Role

logger = structlog.get_logger(__name__)


class PreferencesService:
    """Reads and writes the role preference."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store or get_store()

    def get_role(self) -> Role:
        """Current role; packer when unset or unreadable."""
        raw = self.store.load(ROLE_KEY, Role.PACKER.value)
        try:
            return Role(raw)
        except ValueError:
            logger.warning("role_preference_invalid", value=raw)
            return Role.PACKER

    def set_role(self, role: Role) -> Role:
        self.store.save(ROLE_KEY, role.value)
        logger.info("role_changed", role=role.value)
        return role


# Singleton instance for convenience
_preferences_service: Optional[PreferencesService] = None


def get_preferences_service() -> PreferencesService:
    """Get or create PreferencesService instance."""
    global _preferences_service
    if _preferences_service is None:
        _preferences_service = PreferencesService()
    return _preferences_service
