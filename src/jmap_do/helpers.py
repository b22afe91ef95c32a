"""
Helpers for URI templates and JMAP method responses.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from .errors import MethodError, MethodErrors, ResponseMismatchError, TemplateError
from .types import Invocation, MethodResult, ProblemDetails

__all__ = [
    "expand_uri_template",
    "is_error_invocation",
    "get_error_from_invocation",
    "get_results_for_method_calls",
    "raise_for_method_errors",
    "verify_method_responses",
]

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def expand_uri_template(template: str, params: Mapping[str, str]) -> str:
    """
    Expand a level-1 URI template (RFC 6570) with the given parameters.

    Every parameter must appear in the template, and every placeholder
    must be given a value; values are substituted as given.

    Raises:
        TemplateError: A parameter has no "{name}" placeholder in the
            template, or a placeholder has no parameter
    """
    for name in _PLACEHOLDER.findall(template):
        if name not in params:
            raise TemplateError(template, name)

    expanded = template
    for key, value in params.items():
        parameter = f"{{{key}}}"
        if parameter not in expanded:
            raise TemplateError(template, key)
        expanded = expanded.replace(parameter, str(value))
    return expanded


def is_error_invocation(invocation: Invocation) -> bool:
    return invocation[0] == "error"


def get_error_from_invocation(invocation: Invocation) -> ProblemDetails | None:
    if is_error_invocation(invocation):
        return invocation[1]
    return None


def get_results_for_method_calls(
    method_responses: Iterable[Invocation],
    *,
    return_errors: bool,
) -> dict[str, Any]:
    """
    Map method responses back onto their method call ids.

    This trusts the server to follow RFC 8620: one response per method
    call, matching ids, no duplicates. See ``verify_method_responses`` for
    a stricter check.

    Args:
        method_responses: The "methodResponses" array
        return_errors: If True, every value is a MethodResult holding either
            data or error. If False, values are the raw response data.
    """
    results: dict[str, Any] = {}
    for name, data, call_id in method_responses:
        if not return_errors:
            results[call_id] = data
        elif name == "error":
            results[call_id] = MethodResult(data=None, error=data)
        else:
            results[call_id] = MethodResult(data=data, error=None)
    return results


def raise_for_method_errors(method_responses: Iterable[Invocation]) -> None:
    """
    Raise MethodErrors if any method response is an error invocation.
    """
    errors = [
        MethodError(invocation[1], method_call_id=invocation[2])
        for invocation in method_responses
        if is_error_invocation(invocation)
    ]
    if errors:
        raise MethodErrors(errors)


def verify_method_responses(
    request_ids: Iterable[str],
    method_responses: Iterable[Invocation],
) -> None:
    """
    Check that every method call got a response and nothing else did.

    Several responses sharing one method call id are allowed, since a
    method may emit implicit responses (e.g. Email/set after onSuccess).

    Raises:
        ResponseMismatchError: On missing or unexpected method call ids
    """
    expected = list(dict.fromkeys(request_ids))
    received = list(dict.fromkeys(invocation[2] for invocation in method_responses))
    missing = [call_id for call_id in expected if call_id not in received]
    unexpected = [call_id for call_id in received if call_id not in expected]
    if missing or unexpected:
        raise ResponseMismatchError(missing, unexpected)
