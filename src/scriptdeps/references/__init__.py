"""Per-directive reference resolution for compilers."""

from .resolver import ReferenceDirectiveResolver

__all__ = ["ReferenceDirectiveResolver"]
