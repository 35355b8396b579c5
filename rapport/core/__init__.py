"""Core package - Configuration, logging, exceptions.

This package provides foundational infrastructure used by all other layers.

Modules:
    - config: Environment and configuration management
    - logging: Structured JSON logging
    - exceptions: Custom exception hierarchy
"""

from rapport.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    ExportError,
    RapportError,
    ValidationError,
)

__all__ = [
    "RapportError",
    "ConfigurationError",
    "ValidationError",
    "DatabaseError",
    "ExportError",
]
