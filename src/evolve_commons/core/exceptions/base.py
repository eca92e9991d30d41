"""Base exceptions for evolve-commons.

This module defines the base exception hierarchy for the evolve-commons library.
All exceptions inherit from EvolveCommonsError and carry an error code and
structured details so the UI layer can surface a meaningful message.
"""

from typing import Any, Dict, Optional


class EvolveCommonsError(Exception):
    """Base exception for all evolve-commons errors.

    All exceptions in the evolve-commons library inherit from this base class
    and include structured error information for better debugging and UI messages.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def create_error_response(exception: EvolveCommonsError) -> Dict[str, Any]:
    """Create standardized error payload from exception.

    Args:
        exception: The evolve-commons exception

    Returns:
        Error response dictionary
    """
    return {
        "error": {
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "type": exception.__class__.__name__,
        }
    }
