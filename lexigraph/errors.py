"""
Exception classes for lexigraph.

All exceptions carry a human-readable message plus JSON-friendly context so
callers can turn them into error payloads.
"""

from typing import Any, Dict


class LexigraphError(Exception):
    """Base exception for all lexigraph errors."""

    def __init__(self, message: str, **context):
        """
        Initialize error with message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context for debugging (must be JSON-serializable)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to JSON-serializable dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context
        }


class VectorLengthMismatchError(LexigraphError, ValueError):
    """Two vectors of different length were compared."""
    pass


class FeatureNotObservedError(LexigraphError, KeyError):
    """A feature was looked up in a class that never observed it."""
    pass


class NodeNotFoundError(LexigraphError, KeyError):
    """No node exists with the requested id."""
    pass


class ClassNotFoundError(NodeNotFoundError):
    """No class node exists with the requested name."""
    pass


class CacheTypeError(LexigraphError, TypeError):
    """A cache slot was written with a value of the wrong type."""
    pass
