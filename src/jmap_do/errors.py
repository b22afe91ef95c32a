"""
Error types for jmap-do.

Error Code Ranges:
- 1xxx: Transport errors (HTTP status, network)
- 2xxx: Method errors reported inside a JMAP response
- 3xxx: Batch compilation errors (result references)
- 4xxx: URI template errors
- 5xxx: Session errors
- 6xxx: Response verification errors
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Error codes used by jmap-do exceptions."""

    TRANSPORT_ERROR = 1001

    METHOD_ERROR = 2001
    METHOD_ERRORS = 2002

    UNRESOLVED_REFERENCE = 3001
    REFERENCE_KEY_CONFLICT = 3002

    TEMPLATE_ERROR = 4001

    SESSION_ERROR = 5001

    RESPONSE_MISMATCH = 6001


ERROR_CODE_NAMES: dict[ErrorCode, str] = {code: code.name for code in ErrorCode}


class JmapError(Exception):
    """
    Base error class for all jmap-do errors.

    Error Hierarchy:
    - JmapError (base)
      - TransportError: HTTP failures and network errors
      - MethodError: a method call answered with an "error" invocation
      - MethodErrors: one or more method errors in a batch
      - UnresolvedReferenceError: reference to a draft outside the batch
      - ReferenceKeyConflictError: "#key" collides with a plain "key"
      - TemplateError: URI template parameter missing
      - SessionError: invalid session document
      - ResponseMismatchError: response ids do not match request ids

    Example:
        ```python
        try:
            await client.api.Email.get(accountId=account_id, ids=ids)
        except JmapError as error:
            print(f"JMAP error [{error.code}]: {error.message}")
        ```

    Attributes:
        message: Human-readable error message.
        code: Numeric error code.
        code_name: String name of the error code.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        code_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.code_name = code_name or ERROR_CODE_NAMES.get(code, "UNKNOWN_ERROR")

    def __str__(self) -> str:
        return f"{self.code_name}({self.code}): {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code})"

    def to_dict(self) -> dict[str, Any]:
        """Return a dictionary representation of the error."""
        return {
            "name": self.__class__.__name__,
            "message": self.message,
            "code": int(self.code),
            "code_name": self.code_name,
        }


class TransportError(JmapError):
    """
    Error raised when an HTTP exchange fails.

    Error Code: 1001 (TRANSPORT_ERROR)

    Raised for non-2xx responses from the session, API, upload and download
    endpoints, and for network failures reported by httpx. Never retried.

    Attributes:
        status: HTTP status code, or None for network failures.
        details: Parsed JSON problem details, or the raw response text.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | str | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.TRANSPORT_ERROR)
        self.status = status
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["status"] = self.status
        result["details"] = self.details
        return result


class MethodError(JmapError):
    """
    Error raised when the server answers a method call with an error.

    Error Code: 2001 (METHOD_ERROR)

    Example:
        ```python
        try:
            await client.request("Email/get", {"accountId": "nope"})
        except MethodError as error:
            if error.type == "accountNotFound":
                ...
        ```

    Attributes:
        problem: The error invocation's arguments, as sent by the server.
        type: The JMAP error type (e.g. "unknownMethod").
        description: Optional description supplied by the server.
        method_call_id: The method call id the error was reported for.
    """

    def __init__(
        self,
        problem: dict[str, Any],
        method_call_id: str | None = None,
    ) -> None:
        self.problem = problem
        self.type = problem.get("type", "serverFail")
        self.description = problem.get("description")
        self.method_call_id = method_call_id
        message = self.type
        if self.description:
            message = f"{self.type}: {self.description}"
        super().__init__(message, ErrorCode.METHOD_ERROR)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["problem"] = self.problem
        result["method_call_id"] = self.method_call_id
        return result


class MethodErrors(JmapError):
    """
    Error raised when any method call in a batch fails.

    Error Code: 2002 (METHOD_ERRORS)

    The whole batch is reported as failed; use
    ``request_many(..., return_errors=True)`` to receive partial results.

    Attributes:
        errors: One MethodError per failed method call, in response order.
    """

    def __init__(self, errors: list[MethodError]) -> None:
        self.errors = errors
        ids = ", ".join(str(e.method_call_id) for e in errors)
        super().__init__(
            f"{len(errors)} method call(s) failed: {ids}", ErrorCode.METHOD_ERRORS
        )

    def __iter__(self):
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


class UnresolvedReferenceError(JmapError):
    """
    Error raised when a result reference points outside its batch.

    Error Code: 3001 (UNRESOLVED_REFERENCE)

    Attributes:
        method_call_id: Id of the draft holding the reference.
        argument: Argument name holding the reference.
        target_method: Method name of the referenced draft.
    """

    def __init__(self, method_call_id: str, argument: str, target_method: str) -> None:
        super().__init__(
            f"Argument '{argument}' of '{method_call_id}' references a "
            f"'{target_method}' draft that is not part of this request",
            ErrorCode.UNRESOLVED_REFERENCE,
        )
        self.method_call_id = method_call_id
        self.argument = argument
        self.target_method = target_method


class ReferenceKeyConflictError(JmapError):
    """
    Error raised when a reference key collides with a plain argument.

    Error Code: 3002 (REFERENCE_KEY_CONFLICT)

    JMAP rejects an arguments object holding both "foo" and "#foo".
    """

    def __init__(self, method_call_id: str, argument: str) -> None:
        super().__init__(
            f"Arguments of '{method_call_id}' contain both '{argument}' and "
            f"'#{argument}'",
            ErrorCode.REFERENCE_KEY_CONFLICT,
        )
        self.method_call_id = method_call_id
        self.argument = argument


class TemplateError(JmapError):
    """
    Error raised when a URI template cannot be expanded.

    Error Code: 4001 (TEMPLATE_ERROR)

    Attributes:
        template: The URI template.
        parameter: The missing parameter name.
    """

    def __init__(self, template: str, parameter: str) -> None:
        super().__init__(
            f'Template "{template}" is missing parameter: {parameter}',
            ErrorCode.TEMPLATE_ERROR,
        )
        self.template = template
        self.parameter = parameter


class SessionError(JmapError):
    """
    Error raised when the session document is not a valid JMAP session.

    Error Code: 5001 (SESSION_ERROR)
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.SESSION_ERROR)


class ResponseMismatchError(JmapError):
    """
    Error raised by strict verification of method responses.

    Error Code: 6001 (RESPONSE_MISMATCH)

    Attributes:
        missing: Request ids that received no response.
        unexpected: Response ids that were never requested.
    """

    def __init__(self, missing: list[str], unexpected: list[str]) -> None:
        parts = []
        if missing:
            parts.append(f"no response for {', '.join(missing)}")
        if unexpected:
            parts.append(f"unexpected response for {', '.join(unexpected)}")
        super().__init__(
            "Method responses do not match method calls: " + "; ".join(parts),
            ErrorCode.RESPONSE_MISMATCH,
        )
        self.missing = missing
        self.unexpected = unexpected


def is_error_code(error: BaseException, code: ErrorCode) -> bool:
    """
    Check if an error is a JmapError with a specific error code.

    Example:
        ```python
        try:
            await client.request_many(build)
        except Exception as error:
            if is_error_code(error, ErrorCode.METHOD_ERRORS):
                ...
        ```
    """
    return isinstance(error, JmapError) and error.code == code


def wrap_error(error: BaseException) -> JmapError:
    """
    Wrap an unknown error into a JmapError.

    JmapError instances are returned unchanged; anything else becomes a
    TransportError with the original chained as its cause.
    """
    if isinstance(error, JmapError):
        return error
    wrapped = TransportError(str(error))
    wrapped.__cause__ = error
    return wrapped
