"""
Client preference schemas.
"""

from enum import Enum

from models.base import BaseSchema


class Role(str, Enum):
    """Which screen the client shows."""
    PACKER = "packer"
    ADMIN = "admin"


class RolePreference(BaseSchema):
    """Current role selection."""
    role: Role
