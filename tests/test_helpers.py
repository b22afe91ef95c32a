"""
Unit tests for URI templates and method response handling.
"""

import pytest

from jmap_do import (
    MethodErrors,
    MethodResult,
    ResponseMismatchError,
    TemplateError,
    expand_uri_template,
    get_error_from_invocation,
    get_results_for_method_calls,
    is_error_invocation,
    verify_method_responses,
)
from jmap_do.helpers import raise_for_method_errors


class TestExpandUriTemplate:
    """Tests for expand_uri_template."""

    def test_expands_parameters(self):
        url = expand_uri_template(
            "https://example.com/download/{accountId}/{blobId}/{name}?type={type}",
            {"accountId": "a1", "blobId": "B1", "name": "file.txt", "type": "text/plain"},
        )

        assert url == "https://example.com/download/a1/B1/file.txt?type=text/plain"

    def test_repeated_parameter(self):
        assert expand_uri_template("/{x}/{x}", {"x": "1"}) == "/1/1"

    def test_missing_parameter_raises(self):
        with pytest.raises(TemplateError) as exc_info:
            expand_uri_template("https://example.com/upload/", {"accountId": "a1"})

        assert exc_info.value.parameter == "accountId"
        assert "accountId" in str(exc_info.value)

    def test_no_parameters(self):
        assert expand_uri_template("https://example.com/", {}) == "https://example.com/"

    def test_unfilled_placeholder_raises(self):
        with pytest.raises(TemplateError) as exc_info:
            expand_uri_template(
                "https://example.com/download/{accountId}/{blobId}",
                {"accountId": "a1"},
            )

        assert exc_info.value.parameter == "blobId"
        assert "blobId" in str(exc_info.value)

    def test_value_with_braces_is_not_a_placeholder(self):
        assert expand_uri_template("/{name}", {"name": "{x}"}) == "/{x}"


class TestErrorInvocations:
    """Tests for error invocation classification."""

    def test_error_invocation(self):
        invocation = ["error", {"type": "unknownMethod"}, "r1"]

        assert is_error_invocation(invocation)
        assert get_error_from_invocation(invocation) == {"type": "unknownMethod"}

    def test_success_invocation(self):
        invocation = ["Email/get", {"list": []}, "r1"]

        assert not is_error_invocation(invocation)
        assert get_error_from_invocation(invocation) is None


class TestGetResults:
    """Tests for mapping responses onto method call ids."""

    RESPONSES = [
        ["Mailbox/get", {"list": [{"id": "m1"}]}, "mailboxes"],
        ["error", {"type": "invalidArguments"}, "emails"],
    ]

    def test_returning_mode(self):
        results = get_results_for_method_calls(self.RESPONSES, return_errors=True)

        assert results == {
            "mailboxes": MethodResult(data={"list": [{"id": "m1"}]}, error=None),
            "emails": MethodResult(data=None, error={"type": "invalidArguments"}),
        }
        assert results["mailboxes"].ok
        assert not results["emails"].ok

    def test_data_mode(self):
        results = get_results_for_method_calls(self.RESPONSES[:1], return_errors=False)

        assert results == {"mailboxes": {"list": [{"id": "m1"}]}}

    def test_keys_match_ids(self):
        ids = [f"c{i}" for i in range(5)]
        responses = [["Core/echo", {"n": i}, call_id] for i, call_id in enumerate(ids)]

        results = get_results_for_method_calls(responses, return_errors=False)

        assert list(results) == ids
        assert [results[call_id]["n"] for call_id in ids] == list(range(5))

    def test_raise_for_method_errors(self):
        with pytest.raises(MethodErrors) as exc_info:
            raise_for_method_errors(self.RESPONSES)

        errors = exc_info.value.errors
        assert len(errors) == 1
        assert errors[0].type == "invalidArguments"
        assert errors[0].method_call_id == "emails"

    def test_raise_for_method_errors_success(self):
        raise_for_method_errors(self.RESPONSES[:1])


class TestVerifyMethodResponses:
    """Tests for strict response verification."""

    def test_matching_ids(self):
        verify_method_responses(
            ["a", "b"], [["X/get", {}, "a"], ["Y/get", {}, "b"]]
        )

    def test_multiple_responses_for_one_call(self):
        """Implicit responses share the method call id."""
        verify_method_responses(
            ["a"], [["Email/set", {}, "a"], ["EmailSubmission/set", {}, "a"]]
        )

    def test_missing_response(self):
        with pytest.raises(ResponseMismatchError) as exc_info:
            verify_method_responses(["a", "b"], [["X/get", {}, "a"]])

        assert exc_info.value.missing == ["b"]
        assert exc_info.value.unexpected == []

    def test_unexpected_response(self):
        with pytest.raises(ResponseMismatchError) as exc_info:
            verify_method_responses(["a"], [["X/get", {}, "a"], ["X/get", {}, "zz"]])

        assert exc_info.value.unexpected == ["zz"]
