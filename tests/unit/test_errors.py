"""
Unit Tests for Errors and Validation
====================================

Tests the LexigraphError hierarchy and the input validation helpers.
"""

import pytest

from lexigraph import (
    CacheTypeError,
    ClassNotFoundError,
    FeatureNotObservedError,
    LexigraphError,
    NodeNotFoundError,
    VectorLengthMismatchError,
)
from lexigraph.validation import (
    validate_non_empty_string,
    validate_positive_int,
    validate_string,
)


class TestErrorHierarchy:
    """Tests for exception types and payloads."""

    @pytest.mark.parametrize("error_class,builtin", [
        (VectorLengthMismatchError, ValueError),
        (FeatureNotObservedError, KeyError),
        (NodeNotFoundError, KeyError),
        (ClassNotFoundError, KeyError),
        (CacheTypeError, TypeError),
    ])
    def test_subclasses(self, error_class, builtin):
        error = error_class("message")
        assert isinstance(error, LexigraphError)
        assert isinstance(error, builtin)

    def test_class_not_found_is_node_not_found(self):
        assert issubclass(ClassNotFoundError, NodeNotFoundError)

    def test_str_is_message(self):
        """KeyError subclasses still print the plain message."""
        assert str(NodeNotFoundError("Node not found: 3", node_id=3)) == "Node not found: 3"

    def test_to_dict(self):
        error = ClassNotFoundError("Class not found: Weather", class_name="Weather")
        assert error.to_dict() == {
            'error_type': 'ClassNotFoundError',
            'message': "Class not found: Weather",
            'context': {'class_name': "Weather"},
        }


class TestValidation:
    """Tests for validation helpers."""

    def test_validate_string(self):
        validate_string("", "text")
        with pytest.raises(ValueError, match="text must be a string"):
            validate_string(None, "text")

    def test_validate_non_empty_string(self):
        validate_non_empty_string("Sports", "class_name")
        with pytest.raises(ValueError, match="non-empty"):
            validate_non_empty_string("", "class_name")
        with pytest.raises(ValueError):
            validate_non_empty_string(3, "class_name")

    def test_validate_positive_int(self):
        validate_positive_int(1, "max_workers")
        for bad in (0, -2, 1.5, True, "4"):
            with pytest.raises(ValueError):
                validate_positive_int(bad, "max_workers")
