class MSWellsError(Exception):
    """Base class for all mswells-related errors."""

    pass


class ValidationError(MSWellsError, ValueError):
    """Raised when input data fails validation checks."""

    pass


class TopologyError(ValidationError):
    """Raised when a well network cannot be laid out safely in flat arrays."""

    pass
