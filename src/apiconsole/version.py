"""Centralized version information for apiconsole."""

# Package version - follows semantic versioning (MAJOR.MINOR.PATCH)
__version__ = "0.1.0"
