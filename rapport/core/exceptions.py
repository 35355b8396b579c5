"""Rapport Exception Hierarchy.

All custom exceptions inherit from RapportError.

The scoring engine itself never raises: it is total over validated
input. These exceptions belong to the layers around it (config,
boundary validation, storage, export).

Exception Hierarchy:
    RapportError (base)
    ├── ConfigurationError
    ├── ValidationError
    ├── DatabaseError
    └── ExportError
"""


class RapportError(Exception):
    """Base exception for all Rapport errors.

    Allows broad exception handling when needed.
    """

    pass


class ConfigurationError(RapportError):
    """Configuration is invalid or missing.

    Raised when:
        - Configuration file is malformed
        - A numeric setting cannot be parsed
        - Path is not writable
    """

    pass


class ValidationError(RapportError):
    """Data validation failed at the storage boundary.

    Raised when:
        - A criterion rating is outside 0-3
        - Response quality, energy, trend or attention level is out of range
        - Desired contact frequency is below one day
    """

    pass


class DatabaseError(RapportError):
    """Database operation failed.

    Raised when:
        - Database file cannot be opened
        - Database is locked
        - Query execution fails
        - Foreign key constraint violated
    """

    pass


class ExportError(RapportError):
    """Export operation failed.

    Raised when:
        - Output file cannot be written
        - Requested format is unknown
    """

    pass
