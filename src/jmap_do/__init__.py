"""
jmap-do - Python client for JMAP servers.

This package provides an async JMAP client with support for:
- Single method calls via {entity}.{operation} access
- Batches of method calls in one request, with result references
- Automatic capability declaration
- Blob upload/download and event source subscriptions

Example usage:
    from jmap_do import JamClient

    async def main():
        async with JamClient(
            bearer_token="...",
            session_url="https://api.fastmail.com/jmap/session",
        ) as jam:
            account_id = await jam.get_primary_account()

            # Single method call
            mailboxes, _ = await jam.api.Mailbox.get(accountId=account_id)

            # Batch with a result reference
            def build(b):
                query = b.Email.query(accountId=account_id, limit=10)
                emails = b.Email.get(
                    accountId=account_id,
                    ids=query.ref("/ids"),
                    properties=["subject", "from"],
                )
                return {"query": query, "emails": emails}

            results, _ = await jam.request_many(build)
            print(results["emails"]["list"])

    import asyncio
    asyncio.run(main())
"""

from __future__ import annotations

__version__ = "0.1.0"

from .capabilities import (
    CORE_CAPABILITY,
    KNOWN_CAPABILITIES,
    build_capability_map,
    get_capabilities_for_method_calls,
)
from .client import ApiProxy, JamClient, parse_session
from .config import configure, configure_from_env, get_config
from .drafts import (
    CompiledRequest,
    DraftsProxy,
    InvocationDraft,
    Ref,
    build_requests_from_drafts,
)
from .errors import (
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
from .helpers import (
    expand_uri_template,
    get_error_from_invocation,
    get_results_for_method_calls,
    is_error_invocation,
    verify_method_responses,
)
from .types import ClientConfig, Meta, MethodResult, ServerSentEvent, Session
from .utils import all_header_fields, header_field

__all__ = [
    # Client
    "JamClient",
    "ApiProxy",
    "parse_session",
    # Drafts
    "DraftsProxy",
    "InvocationDraft",
    "Ref",
    "CompiledRequest",
    "build_requests_from_drafts",
    # Capabilities
    "CORE_CAPABILITY",
    "KNOWN_CAPABILITIES",
    "build_capability_map",
    "get_capabilities_for_method_calls",
    # Helpers
    "expand_uri_template",
    "is_error_invocation",
    "get_error_from_invocation",
    "get_results_for_method_calls",
    "verify_method_responses",
    "header_field",
    "all_header_fields",
    # Types
    "ClientConfig",
    "Meta",
    "MethodResult",
    "ServerSentEvent",
    "Session",
    # Config
    "configure",
    "configure_from_env",
    "get_config",
    # Errors
    "ErrorCode",
    "JmapError",
    "TransportError",
    "MethodError",
    "MethodErrors",
    "UnresolvedReferenceError",
    "ReferenceKeyConflictError",
    "TemplateError",
    "SessionError",
    "ResponseMismatchError",
    "is_error_code",
    "wrap_error",
    # Version
    "__version__",
]
