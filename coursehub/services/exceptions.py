# services/exceptions.py
from typing import Any, Dict, List, Optional


class FormValidationError(Exception):
    """Field-keyed validation failure for an admin or public form.

    ``old_input`` carries the submitted non-file values so the client can
    repopulate its inputs.
    """

    def __init__(self, errors: Dict[str, List[str]], old_input: Optional[Dict[str, Any]] = None):
        super().__init__("The given data was invalid.")
        self.errors = errors
        self.old_input = old_input or {}


class NotFoundError(Exception):
    pass


class ConflictError(Exception):
    pass


class OperationFailedError(Exception):
    """An operation failed for reasons the caller cannot fix; the message is safe to show."""
