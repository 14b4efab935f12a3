"""scriptdeps: dependency resolution and restore caching for C# scripts."""

__version__ = "0.1.0"
