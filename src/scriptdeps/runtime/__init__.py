"""Run-time dependency projection."""

from .resolver import (
    RuntimeAssembly,
    RuntimeDependency,
    RuntimeDependencyProjector,
    RuntimeDependencyResolver,
    RuntimeResourceAssembly,
)

__all__ = [
    "RuntimeAssembly",
    "RuntimeDependency",
    "RuntimeDependencyProjector",
    "RuntimeDependencyResolver",
    "RuntimeResourceAssembly",
]
