"""
Type definitions for jmap-do

This module contains the data shapes shared across the jmap-do package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeAlias, TypedDict, TypeVar

import httpx
from pydantic import BaseModel, Field

T = TypeVar("T")

# [name, arguments or response, method call id]
Invocation: TypeAlias = list[Any]

ProblemDetails: TypeAlias = dict[str, Any]

# JSON Pointer with "*" wildcards, e.g. "/list/*/id"
ExtendedJSONPointer: TypeAlias = str


class ResultReference(TypedDict):
    """Wire form of a result reference (RFC 8620 § 3.7)."""

    resultOf: str
    name: str
    path: ExtendedJSONPointer


class JmapRequest(TypedDict, total=False):
    """Body of a JMAP API request."""

    using: list[str]
    methodCalls: list[Invocation]
    createdIds: dict[str, str]


class BlobUploadResponse(TypedDict):
    """Response body of a blob upload."""

    accountId: str
    blobId: str
    type: str
    size: int


@dataclass
class MethodResult(Generic[T]):
    """Per-call outcome returned by ``request_many(..., return_errors=True)``."""

    data: T | None = None
    error: ProblemDetails | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Meta:
    """Response metadata accompanying every request result."""

    session_state: str | None
    created_ids: dict[str, str] | None = None
    response: httpx.Response | None = field(default=None, repr=False)


@dataclass
class ClientConfig:
    """Client configuration options."""

    session_url: str | None = None
    bearer_token: str | None = None
    timeout: float = 30.0
    custom_capabilities: dict[str, str] = field(default_factory=dict)


@dataclass
class ServerSentEvent:
    """A single event read from the event source stream."""

    event: str = "message"
    data: str = ""
    id: str | None = None
    retry: int | None = None


EventTypes: TypeAlias = Literal["*"] | list[str]


class Account(BaseModel):
    """An account entry of the session document."""

    name: str
    is_personal: bool = Field(default=True, alias="isPersonal")
    is_read_only: bool = Field(default=False, alias="isReadOnly")
    account_capabilities: dict[str, Any] = Field(
        default_factory=dict, alias="accountCapabilities"
    )

    model_config = {"populate_by_name": True, "extra": "allow"}


class Session(BaseModel):
    """
    JMAP session resource (RFC 8620 § 2).

    Accepts both the camelCase wire names and the snake_case attribute
    names. Unknown fields are kept for forward compatibility.
    """

    capabilities: dict[str, Any]
    accounts: dict[str, Account] = Field(default_factory=dict)
    primary_accounts: dict[str, str] = Field(
        default_factory=dict, alias="primaryAccounts"
    )
    username: str = ""
    api_url: str = Field(alias="apiUrl")
    download_url: str = Field(alias="downloadUrl")
    upload_url: str = Field(alias="uploadUrl")
    event_source_url: str = Field(alias="eventSourceUrl")
    state: str = ""

    model_config = {"populate_by_name": True, "extra": "allow"}
