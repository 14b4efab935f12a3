"""Package version and reference models."""

from .models import AssemblyReference, PackageReference, PackageVersion
from .parser import parse_package_token

__all__ = [
    "AssemblyReference",
    "PackageReference",
    "PackageVersion",
    "parse_package_token",
]
