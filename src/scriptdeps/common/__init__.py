"""Shared helpers: logging, HTTP, process execution and file IO."""
