"""
Unit tests for the jmap-do error hierarchy.
"""

import pytest

from jmap_do import (
    ErrorCode,
    JmapError,
    MethodError,
    MethodErrors,
    ReferenceKeyConflictError,
    ResponseMismatchError,
    SessionError,
    TemplateError,
    TransportError,
    UnresolvedReferenceError,
    is_error_code,
    wrap_error,
)


class TestErrorHierarchy:
    """All errors share the JmapError base."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (TransportError("boom", status=500), ErrorCode.TRANSPORT_ERROR),
            (MethodError({"type": "serverFail"}), ErrorCode.METHOD_ERROR),
            (MethodErrors([]), ErrorCode.METHOD_ERRORS),
            (UnresolvedReferenceError("a", "ids", "Email/query"), ErrorCode.UNRESOLVED_REFERENCE),
            (ReferenceKeyConflictError("a", "ids"), ErrorCode.REFERENCE_KEY_CONFLICT),
            (TemplateError("/x", "y"), ErrorCode.TEMPLATE_ERROR),
            (SessionError("bad"), ErrorCode.SESSION_ERROR),
            (ResponseMismatchError(["a"], []), ErrorCode.RESPONSE_MISMATCH),
        ],
    )
    def test_codes(self, error, code):
        assert isinstance(error, JmapError)
        assert error.code == code
        assert error.code_name == code.name
        assert is_error_code(error, code)

    def test_str_includes_code(self):
        error = SessionError("bad session")

        assert str(error) == "SESSION_ERROR(5001): bad session"

    def test_to_dict(self):
        error = TransportError("failed", status=503, details="try later")

        assert error.to_dict() == {
            "name": "TransportError",
            "message": "failed",
            "code": 1001,
            "code_name": "TRANSPORT_ERROR",
            "status": 503,
            "details": "try later",
        }


class TestMethodError:
    """Tests for MethodError and MethodErrors."""

    def test_fields_from_problem(self):
        error = MethodError(
            {"type": "invalidArguments", "description": "bad filter"},
            method_call_id="q",
        )

        assert error.type == "invalidArguments"
        assert error.description == "bad filter"
        assert error.method_call_id == "q"
        assert error.message == "invalidArguments: bad filter"

    def test_missing_type(self):
        assert MethodError({}).type == "serverFail"

    def test_collection(self):
        errors = [MethodError({"type": "a"}, "x"), MethodError({"type": "b"}, "y")]

        collected = MethodErrors(errors)

        assert len(collected) == 2
        assert list(collected) == errors
        assert "x, y" in collected.message


class TestErrorUtilities:
    """Tests for is_error_code and wrap_error."""

    def test_is_error_code_other_exception(self):
        assert not is_error_code(ValueError("x"), ErrorCode.TRANSPORT_ERROR)

    def test_wrap_keeps_jmap_errors(self):
        error = SessionError("x")

        assert wrap_error(error) is error

    def test_wrap_other_errors(self):
        cause = OSError("connection reset")

        wrapped = wrap_error(cause)

        assert isinstance(wrapped, TransportError)
        assert wrapped.__cause__ is cause
        assert "connection reset" in wrapped.message
