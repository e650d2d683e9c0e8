"""
Stream Classification Service - Custom Exceptions

Anti-Patterns Avoided:
- Exception shadowing: use StreamClassifierError instead of builtins like
  ValueError or LookupError
"""


class StreamClassifierError(Exception):
    """Base exception for the Stream Classification Service.

    All custom exceptions inherit from this base class.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message
