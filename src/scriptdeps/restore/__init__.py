"""Restore step and its manifest-keyed cache."""

from .cached import CachedRestorer, default_restorer
from .restorer import DotnetRestorer, ProfiledRestorer, Restorer, ensure_can_restore

__all__ = [
    "CachedRestorer",
    "default_restorer",
    "DotnetRestorer",
    "ensure_can_restore",
    "ProfiledRestorer",
    "Restorer",
]
