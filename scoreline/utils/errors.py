"""
Error types raised by the prediction and settlement services.

Each error carries the HTTP status and machine-readable code the API
returns for it; see register_error_handlers() in scoreline/__init__.py.
"""


class ScorelineError(Exception):
    status_code = 500
    error_code = "internal"

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        data = {"error": self.error_code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(ScorelineError):
    """Unknown match, user, team, news item or prediction id"""

    status_code = 404
    error_code = "not_found"


class InvalidStateError(ScorelineError):
    """Operation not allowed in the entity's current lifecycle state"""

    status_code = 409
    error_code = "invalid_state"


class InvalidInputError(ScorelineError):
    """Malformed or out-of-range request data"""

    status_code = 400
    error_code = "invalid_input"


class ConflictError(ScorelineError):
    """Uniqueness or reference conflict with existing rows"""

    status_code = 409
    error_code = "conflict"


class SettlementError(ScorelineError):
    """Store failure while settling a match; all changes were rolled back"""

    status_code = 500
    error_code = "internal"
