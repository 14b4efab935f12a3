"""Compile-time dependency resolution."""

from .resolver import CompilationDependency, CompilationDependencyResolver

__all__ = ["CompilationDependency", "CompilationDependencyResolver"]
