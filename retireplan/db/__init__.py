"""Database layer for saved plan profiles."""

from retireplan.db.migrations import PROFILE_VERSION, load_parameters, migrate_profile
from retireplan.db.repository import ProfileRepository
from retireplan.db.schema import create_schema

__all__ = [
    "PROFILE_VERSION",
    "ProfileRepository",
    "create_schema",
    "load_parameters",
    "migrate_profile",
]
