"""
Error taxonomy for the point store.

Not-found is never an error: lookups return None, empty lists, False or 0.
"""


class TransitPointsError(Exception):
    """Base class for errors raised by the point store"""
    pass


class ValidationError(TransitPointsError):
    """Raised when a caller-supplied argument violates a precondition.

    Always raised before the database is touched.
    """
    pass


class PersistenceError(TransitPointsError):
    """Raised when the database reports a failure or a write has no effect"""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation
