"""
Error taxonomy shared by every costing app.

- ValidationError: malformed or out-of-range input, raised before computing.
- ConflictError: a state-machine rule was violated (e.g. editing a posted invoice).
- NotFoundError: a referenced record does not exist or is archived.

Division by zero in ratios and regex timeouts are not errors; they resolve
to ``None`` or a non-match where they happen.
"""


class CostingEngineError(Exception):
    """Base exception for the costing engine."""
    pass


class ValidationError(CostingEngineError):
    """Raised when input is malformed or out of range."""

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)


class ConflictError(CostingEngineError):
    """Raised when an operation is not allowed in the record's current state."""

    def __init__(self, message, current_status=None):
        self.current_status = current_status
        super().__init__(message)


class NotFoundError(CostingEngineError):
    """Raised when a referenced record cannot be found."""

    def __init__(self, model_name, identifier, message=None):
        self.model_name = model_name
        self.identifier = identifier
        if message is None:
            message = f"{model_name} '{identifier}' not found"
        super().__init__(message)
