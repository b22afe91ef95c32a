"""
JamClient - HTTP client for JMAP servers.

The client loads the session resource once, sends single method calls or
batches of drafts to the API endpoint, and wraps the blob and event
source endpoints.
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any, AsyncIterator, Callable, Coroutine, Iterable, Mapping

import httpx
from pydantic import ValidationError

from .capabilities import build_capability_map, get_capabilities_for_method_calls
from .config import get_config
from .drafts import DraftsSource, build_requests_from_drafts
from .errors import MethodError, SessionError, TransportError
from .helpers import (
    expand_uri_template,
    get_error_from_invocation,
    get_results_for_method_calls,
    raise_for_method_errors,
    verify_method_responses,
)
from .types import (
    BlobUploadResponse,
    EventTypes,
    Invocation,
    JmapRequest,
    Meta,
    ServerSentEvent,
    Session,
)

__all__ = ["JamClient", "parse_session"]

logger = logging.getLogger(__name__)

MAIL_CAPABILITY = "urn:ietf:params:jmap:mail"

# Method call id used by JamClient.request
SINGLE_CALL_ID = "r1"


def parse_session(data: Any) -> Session:
    """
    Validate a session document.

    Raises:
        SessionError: If the document is not a JMAP session
    """
    if not isinstance(data, dict):
        raise SessionError(f"Session must be a JSON object, got {type(data).__name__}")
    try:
        return Session.model_validate(data)
    except ValidationError as e:
        raise SessionError(f"Invalid session document: {e}") from e


def _error_details(response: httpx.Response) -> dict[str, Any] | str:
    """Problem details from a JSON error body, or the raw text."""
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def _raise_for_status(response: httpx.Response, message: str) -> None:
    if not response.is_success:
        raise TransportError(
            f"{message}: {response.status_code} {response.reason_phrase}",
            status=response.status_code,
            details=_error_details(response),
        )


class JamClient:
    """
    JMAP client using bearer token authentication.

    The session resource is fetched once, as soon as possible: immediately
    when the client is created inside a running event loop, otherwise on
    first use. Every call awaits the same fetch.

    Example:
        async with JamClient(
            bearer_token="...",
            session_url="https://api.fastmail.com/jmap/session",
        ) as jam:
            account_id = await jam.get_primary_account()

            # Single method call
            mailboxes, meta = await jam.api.Mailbox.get(accountId=account_id)

            # Several dependent method calls in one request
            results, meta = await jam.request_many(lambda b: {
                "inbox": (inbox := b.Mailbox.query(
                    accountId=account_id, filter={"role": "inbox"},
                )),
                "emails": b.Email.query(
                    accountId=account_id,
                    filter={"inMailbox": inbox.ref("/ids/0")},
                ),
            })

    Method calls within one request are processed by the server in order.
    Separate requests sent concurrently may be processed in any order, so
    use one request for dependent calls and asyncio.gather over separate
    requests for independent ones.
    """

    def __init__(
        self,
        bearer_token: str | None = None,
        session_url: str | None = None,
        *,
        custom_capabilities: Mapping[str, str] | None = None,
        timeout: float | None = None,
        strict: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            bearer_token: Token used to authenticate all requests
                (default: JMAP_BEARER_TOKEN / configure())
            session_url: URL of the JMAP session resource
                (default: JMAP_SESSION_URL / configure())
            custom_capabilities: Extra entity name → capability URI entries,
                e.g. {"Sandwich": "urn:bigco:params:jmap:sandwich"}
            timeout: HTTP timeout in seconds (default: 30)
            strict: Verify that method responses match method calls
            http_client: httpx client to use instead of a private one
        """
        config = get_config()

        token = bearer_token or config.bearer_token
        if not token:
            raise ValueError(
                "Bearer token required. Pass bearer_token or set JMAP_BEARER_TOKEN."
            )
        url = session_url or config.session_url
        if not url:
            raise ValueError(
                "Session URL required. Pass session_url or set JMAP_SESSION_URL."
            )

        self.auth_header = f"Bearer {token}"
        self.session_url = url
        self.capabilities = build_capability_map(
            {**config.custom_capabilities, **(custom_capabilities or {})}
        )
        self.strict = strict

        self._timeout = timeout if timeout is not None else config.timeout
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout)
        self._session_task: asyncio.Task[Session] | None = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._ensure_session_task()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @staticmethod
    async def load_session(
        session_url: str,
        auth_header: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> Session:
        """
        Retrieve fresh session data.

        Raises:
            TransportError: If the request fails
            SessionError: If the response is not a JMAP session
        """
        headers = {
            "Authorization": auth_header,
            "Accept": "application/json",
            "Cache-Control": "no-cache",
        }
        try:
            if http_client is None:
                async with httpx.AsyncClient() as client:
                    response = await client.get(session_url, headers=headers)
            else:
                response = await http_client.get(session_url, headers=headers)
        except httpx.RequestError as e:
            raise TransportError(f"Failed to load session: {e}") from e

        _raise_for_status(response, "Failed to load session")

        try:
            data = response.json()
        except ValueError as e:
            raise SessionError(f"Session response is not JSON: {e}") from e
        return parse_session(data)

    def _ensure_session_task(self) -> asyncio.Task[Session]:
        if self._session_task is None:
            logger.debug("Loading JMAP session from %s", self.session_url)
            self._session_task = asyncio.ensure_future(
                self.load_session(self.session_url, self.auth_header, self._http)
            )
        return self._session_task

    async def get_session(self) -> Session:
        """Return the session, waiting for the initial fetch if needed."""
        return await asyncio.shield(self._ensure_session_task())

    async def get_primary_account(self) -> str | None:
        """Get the ID of the primary mail account for the current session."""
        session = await self.get_session()
        return session.primary_accounts.get(MAIL_CAPABILITY)

    # ------------------------------------------------------------------
    # API requests
    # ------------------------------------------------------------------

    def _using(self, method_names: Iterable[str], extra: Iterable[str]) -> list[str]:
        capabilities = get_capabilities_for_method_calls(method_names, self.capabilities)
        return list(dict.fromkeys([*sorted(capabilities), *extra]))

    async def _send(
        self,
        body: JmapRequest,
        timeout: float | None,
    ) -> tuple[dict[str, Any], httpx.Response]:
        """POST a request object to the API endpoint and parse the response."""
        session = await self.get_session()

        logger.debug(
            "JMAP request to %s using %s: %s",
            session.api_url,
            body["using"],
            [call[0] for call in body["methodCalls"]],
        )

        try:
            response = await self._http.post(
                session.api_url,
                headers={
                    "Authorization": self.auth_header,
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                json=body,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.RequestError as e:
            raise TransportError(f"JMAP request failed: {e}") from e

        _raise_for_status(response, "JMAP request failed")

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                f"JMAP response is not JSON: {e}",
                status=response.status_code,
                details=response.text,
            ) from e

        if self.strict:
            verify_method_responses(
                [call[2] for call in body["methodCalls"]],
                data.get("methodResponses", []),
            )

        return data, response

    @staticmethod
    def _build_body(
        using: list[str],
        method_calls: list[Invocation],
        created_ids: Mapping[str, str] | None,
    ) -> JmapRequest:
        body: JmapRequest = {"using": using, "methodCalls": method_calls}
        if created_ids is not None:
            body["createdIds"] = dict(created_ids)
        return body

    async def request(
        self,
        method: str,
        args: Mapping[str, Any] | None = None,
        *,
        using: Iterable[str] = (),
        created_ids: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> tuple[Any, Meta]:
        """
        Send a JMAP request containing a single method call.

        Args:
            method: Method name, e.g. "Email/get"
            args: Method arguments
            using: Capabilities to declare in addition to the resolved ones
            created_ids: Initial creation id → server id map
            timeout: HTTP timeout in seconds for this request

        Returns:
            The method response data and response metadata

        Raises:
            TransportError: On a non-2xx response or network failure
            MethodError: If the server answers with an error invocation
        """
        invocation: Invocation = [method, dict(args or {}), SINGLE_CALL_ID]
        body = self._build_body(self._using([method], using), [invocation], created_ids)

        data, response = await self._send(body, timeout)

        method_response = data["methodResponses"][0]
        meta = Meta(
            session_state=data.get("sessionState"),
            created_ids=data.get("createdIds"),
            response=response,
        )

        error = get_error_from_invocation(method_response)
        if error is not None:
            raise MethodError(error, method_call_id=method_response[2])

        return method_response[1], meta

    async def request_many(
        self,
        drafts: DraftsSource,
        *,
        using: Iterable[str] = (),
        created_ids: Mapping[str, str] | None = None,
        return_errors: bool = False,
        timeout: float | None = None,
    ) -> tuple[dict[str, Any], Meta]:
        """
        Send several method calls in a single JMAP request.

        Args:
            drafts: Mapping of method call id → InvocationDraft, or a function
                receiving a DraftsProxy and returning one. Drafts may refer
                to each other's results with ``draft.ref(path)``.
            using: Capabilities to declare in addition to the resolved ones
            created_ids: Initial creation id → server id map
            return_errors: Return a MethodResult per id instead of raising
                when some method calls fail
            timeout: HTTP timeout in seconds for this request

        Returns:
            Results keyed by method call id, and response metadata. Values
            are response data, or MethodResult objects if return_errors.

        Raises:
            UnresolvedReferenceError: A reference points outside the batch
            ReferenceKeyConflictError: An argument is given both plainly
                and as a reference
            TransportError: On a non-2xx response or network failure
            MethodErrors: If any method call fails and not return_errors
        """
        compiled = build_requests_from_drafts(drafts)
        body = self._build_body(
            self._using(compiled.method_names, using),
            compiled.method_calls,
            created_ids,
        )

        data, response = await self._send(body, timeout)

        method_responses = data["methodResponses"]
        meta = Meta(
            session_state=data.get("sessionState"),
            created_ids=data.get("createdIds"),
            response=response,
        )

        if not return_errors:
            raise_for_method_errors(method_responses)

        return (
            get_results_for_method_calls(method_responses, return_errors=return_errors),
            meta,
        )

    @property
    def api(self) -> ApiProxy:
        """
        A fluent API using {entity}.{operation} syntax.

        Example:
            emails, meta = await jam.api.Email.get(
                accountId=account_id,
                ids=ids,
                properties=["subject", "from"],
            )
        """
        return ApiProxy(self)

    # ------------------------------------------------------------------
    # Blobs and events
    # ------------------------------------------------------------------

    async def upload_blob(
        self,
        account_id: str,
        body: bytes | Iterable[bytes] | AsyncIterator[bytes],
        *,
        content_type: str = "application/octet-stream",
        timeout: float | None = None,
    ) -> BlobUploadResponse:
        """
        Upload a blob.

        Raises:
            TemplateError: If the upload URL lacks {accountId}
            TransportError: If the upload fails
        """
        session = await self.get_session()
        url = expand_uri_template(session.upload_url, {"accountId": account_id})

        try:
            response = await self._http.post(
                url,
                headers={
                    "Authorization": self.auth_header,
                    "Accept": "application/json",
                    "Content-Type": content_type,
                },
                content=body,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.RequestError as e:
            raise TransportError(f"Failed to upload blob: {e}") from e

        _raise_for_status(response, "Failed to upload blob")
        return response.json()

    async def download_blob(
        self,
        account_id: str,
        blob_id: str,
        mime_type: str,
        file_name: str,
        *,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Download a blob.

        Returns:
            The HTTP response, with its body read

        Raises:
            TemplateError: If the download URL lacks a parameter
            TransportError: If the download fails
        """
        session = await self.get_session()
        url = expand_uri_template(
            session.download_url,
            {
                "accountId": account_id,
                "blobId": blob_id,
                "type": mime_type,
                "name": file_name,
            },
        )

        try:
            response = await self._http.get(
                url,
                headers={"Authorization": self.auth_header},
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.RequestError as e:
            raise TransportError(f"Failed to download blob: {e}") from e

        _raise_for_status(response, "Failed to download blob")
        return response

    async def event_source_url(
        self,
        types: EventTypes = "*",
        ping: int = 0,
        closeafter: str = "no",
    ) -> str:
        """Expand the session's event source URL template."""
        session = await self.get_session()
        params = {
            "types": types if types == "*" else ",".join(types),
            "closeafter": closeafter,
            "ping": str(ping),
        }
        return expand_uri_template(session.event_source_url, params)

    async def connect_event_source(
        self,
        types: EventTypes = "*",
        ping: int = 0,
        closeafter: str = "no",
    ) -> AsyncIterator[ServerSentEvent]:
        """
        Subscribe to server-sent events.

        Yields events until the server closes the stream or the consumer
        stops iterating.

        Example:
            async for event in jam.connect_event_source(["Email"], ping=60):
                if event.event == "state":
                    print(json.loads(event.data))
        """
        url = await self.event_source_url(types, ping, closeafter)
        headers = {"Authorization": self.auth_header, "Accept": "text/event-stream"}

        try:
            async with self._http.stream("GET", url, headers=headers, timeout=None) as response:
                if not response.is_success:
                    await response.aread()
                _raise_for_status(response, "Failed to connect event source")
                async for event in iter_server_sent_events(response.aiter_lines()):
                    yield event
        except httpx.RequestError as e:
            raise TransportError(f"Event source failed: {e}") from e

    @staticmethod
    def is_problem_details(value: Any) -> bool:
        return isinstance(value, dict) and "type" in value

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client if the JamClient created it."""
        task = self._session_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        elif task is not None and not task.cancelled():
            # Mark a failed fetch as retrieved
            task.exception()

        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> JamClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


class _EntityApi:
    """Operation access for one entity, e.g. ``jam.api.Email``."""

    __slots__ = ("_client", "_entity")

    def __init__(self, client: JamClient, entity: str) -> None:
        self._client = client
        self._entity = entity

    def __getattr__(
        self, operation: str
    ) -> Callable[..., Coroutine[Any, Any, tuple[Any, Meta]]]:
        if operation.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{operation}'")

        method = f"{self._entity}/{operation}"
        client = self._client

        def call(
            args: Mapping[str, Any] | None = None,
            *,
            using: Iterable[str] = (),
            created_ids: Mapping[str, str] | None = None,
            timeout: float | None = None,
            **kwargs: Any,
        ) -> Coroutine[Any, Any, tuple[Any, Meta]]:
            merged = dict(args or {})
            merged.update(kwargs)
            return client.request(
                method, merged, using=using, created_ids=created_ids, timeout=timeout
            )

        call.__name__ = operation
        call.__qualname__ = method
        return call

    def __repr__(self) -> str:
        return f"ApiProxy({self._entity})"


class ApiProxy:
    """
    Sends single method calls with ``{entity}.{operation}(args)`` syntax.

    Example:
        mailboxes, meta = await jam.api.Mailbox.query(
            accountId=account_id,
            filter={"name": "Inbox"},
        )
    """

    __slots__ = ("_client",)

    def __init__(self, client: JamClient) -> None:
        self._client = client

    def __getattr__(self, entity: str) -> _EntityApi:
        if entity.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{entity}'")
        return _EntityApi(self._client, entity)

    def __repr__(self) -> str:
        return "ApiProxy(<root>)"


async def iter_server_sent_events(
    lines: AsyncIterator[str],
) -> AsyncIterator[ServerSentEvent]:
    """
    Parse a text/event-stream body into events.

    Events are dispatched on blank lines; blocks without data lines and
    comment lines (":") are skipped.
    """
    event = ServerSentEvent()
    data: list[str] = []

    async for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if data:
                event.data = "\n".join(data)
                yield event
            event = ServerSentEvent()
            data = []
            continue
        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "event":
            event.event = value
        elif name == "data":
            data.append(value)
        elif name == "id":
            event.id = value
        elif name == "retry":
            try:
                event.retry = int(value)
            except ValueError:
                logger.warning("Ignoring invalid SSE retry value: %r", value)
        else:
            logger.debug("Ignoring unknown SSE field: %s", name)

    if data:
        event.data = "\n".join(data)
        yield event
