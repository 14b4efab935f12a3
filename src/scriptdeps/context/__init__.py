"""Resolution result model and reader."""

from .reader import PackageAsset, ResolutionResult, ResolutionResultReader, ResolvedPackage

__all__ = ["PackageAsset", "ResolutionResult", "ResolutionResultReader", "ResolvedPackage"]
