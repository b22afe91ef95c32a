"""
Invocation drafts and result references.

Drafts are partially-formed method calls used by ``JamClient.request_many``.
They are compiled into standard JMAP method calls before being sent:
ids are applied and reference placeholders become JMAP result references.

Example:
    def build(b: DraftsProxy):
        mailboxes = b.Mailbox.get(accountId="123")
        emails = b.Email.get(
            accountId="123",
            ids=mailboxes.ref("/list/*/id"),
        )
        return {"mailboxes": mailboxes, "emails": emails}

    compiled = build_requests_from_drafts(build)
    compiled.method_calls
    # [["Mailbox/get", {"accountId": "123"}, "mailboxes"],
    #  ["Email/get", {"accountId": "123", "#ids": {...}}, "emails"]]
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Union

from .errors import ReferenceKeyConflictError, UnresolvedReferenceError
from .types import ExtendedJSONPointer, Invocation, ResultReference

__all__ = [
    "Ref",
    "InvocationDraft",
    "DraftsProxy",
    "CompiledRequest",
    "build_requests_from_drafts",
]

logger = logging.getLogger(__name__)

# Draft ids are process-wide so a reference can never match a draft from
# another batch by accident.
_draft_ids = itertools.count(1)


class Ref:
    """
    Placeholder for a value taken from another draft's result.

    Created with ``InvocationDraft.ref(path)`` and replaced by a JMAP
    result reference when the batch is compiled.
    """

    __slots__ = ("_draft", "_path")

    def __init__(self, draft: InvocationDraft, path: ExtendedJSONPointer) -> None:
        self._draft = draft
        self._path = path

    @property
    def draft(self) -> InvocationDraft:
        return self._draft

    @property
    def path(self) -> ExtendedJSONPointer:
        return self._path

    def __repr__(self) -> str:
        return f"Ref({self._draft.method}, {self._path!r})"


class InvocationDraft:
    """
    A method call that has not been assigned a method call id yet.

    The draft is identified by an internal sequence number assigned at
    creation. References created from it carry the draft itself, and the
    compiler matches them by that number, never by comparing arguments.
    """

    __slots__ = ("_draft_id", "_method", "_args")

    def __init__(self, method: str, args: Mapping[str, Any] | None = None) -> None:
        self._draft_id = next(_draft_ids)
        self._method = method
        self._args = dict(args or {})

    @property
    def draft_id(self) -> int:
        return self._draft_id

    @property
    def method(self) -> str:
        return self._method

    @property
    def args(self) -> dict[str, Any]:
        return self._args

    def ref(self, path: ExtendedJSONPointer) -> Ref:
        """
        Create a result reference that points to the result of this draft.

        Args:
            path: JSON Pointer into the result, "*" matching every array
                item (e.g. "/list/*/id" or "/ids")

        Returns:
            A placeholder to use as an argument value of another draft
        """
        if not isinstance(path, str) or not path.startswith("/"):
            raise ValueError(f"Result reference path must start with '/': {path!r}")
        return Ref(self, path)

    @staticmethod
    def is_ref(value: Any) -> bool:
        """Determine if a value is a result reference placeholder."""
        return isinstance(value, Ref)

    @staticmethod
    def create_invocations_from_drafts(
        drafts: Mapping[str, InvocationDraft],
    ) -> CompiledRequest:
        """
        Transform drafts into fully-formed JMAP method calls.

        Method call ids are the mapping keys, emitted in mapping order.
        Every top-level argument holding a placeholder is renamed to
        "#<name>" and its value replaced by a result reference. References
        may point at drafts anywhere in the mapping.

        Raises:
            UnresolvedReferenceError: A placeholder's draft is not in ``drafts``
            ReferenceKeyConflictError: Both "<name>" and "#<name>" would be sent
        """
        # Associate draft ids with method call ids before rewriting anything
        id_for_draft: dict[int, str] = {}
        for call_id, draft in drafts.items():
            if not isinstance(draft, InvocationDraft):
                raise TypeError(
                    f"Expected InvocationDraft for '{call_id}', "
                    f"got {type(draft).__name__}"
                )
            id_for_draft.setdefault(draft.draft_id, call_id)

        compiled = CompiledRequest()

        for call_id, draft in drafts.items():
            args: dict[str, Any] = {}
            for key, value in draft.args.items():
                if isinstance(value, Ref):
                    if f"#{key}" in draft.args:
                        raise ReferenceKeyConflictError(call_id, key)
                    source = value.draft
                    source_id = id_for_draft.get(source.draft_id)
                    if source_id is None:
                        raise UnresolvedReferenceError(call_id, key, source.method)
                    reference: ResultReference = {
                        "resultOf": source_id,
                        "name": source.method,
                        "path": value.path,
                    }
                    args[f"#{key}"] = reference
                else:
                    args[key] = value

            for key in args:
                if key.startswith("#") and key[1:] in args:
                    raise ReferenceKeyConflictError(call_id, key[1:])

            compiled.method_calls.append([draft.method, args, call_id])
            compiled.method_names.add(draft.method)

        logger.debug(
            "Compiled %d method call(s): %s",
            len(compiled.method_calls),
            ", ".join(call[2] for call in compiled.method_calls),
        )
        return compiled

    def __repr__(self) -> str:
        return f"InvocationDraft({self._method})"


@dataclass
class CompiledRequest:
    """Method calls compiled from drafts, plus the method names they use."""

    method_calls: list[Invocation] = field(default_factory=list)
    method_names: set[str] = field(default_factory=set)


class _EntityDrafts:
    """Operation access for one entity, e.g. ``b.Email``."""

    __slots__ = ("_entity",)

    def __init__(self, entity: str) -> None:
        self._entity = entity

    def __getattr__(self, operation: str) -> Callable[..., InvocationDraft]:
        if operation.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{operation}'")

        method = f"{self._entity}/{operation}"

        def draft(args: Mapping[str, Any] | None = None, **kwargs: Any) -> InvocationDraft:
            merged = dict(args or {})
            merged.update(kwargs)
            return InvocationDraft(method, merged)

        draft.__name__ = operation
        draft.__qualname__ = method
        return draft

    def __repr__(self) -> str:
        return f"DraftsProxy({self._entity})"


class DraftsProxy:
    """
    Builds drafts with ``{entity}.{operation}(args)`` syntax.

    Any entity and operation name is accepted; the method name is
    "<entity>/<operation>". Nothing is sent.

    Example:
        b = DraftsProxy()
        draft = b.Email.query(accountId="123", filter={"inMailbox": "inbox"})
        draft.method  # "Email/query"

        # Arguments may also be given as a dict, for names that are not
        # valid Python identifiers
        draft = b.Email.get({"accountId": "123", "#ids": {...}})
    """

    __slots__ = ()

    def __getattr__(self, entity: str) -> _EntityDrafts:
        if entity.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{entity}'")
        return _EntityDrafts(entity)

    def draft(
        self, entity: str, operation: str, args: Mapping[str, Any] | None = None
    ) -> InvocationDraft:
        """Build a draft from explicit entity and operation names."""
        return InvocationDraft(f"{entity}/{operation}", args)

    def __repr__(self) -> str:
        return "DraftsProxy(<root>)"


DraftsSource = Union[
    Mapping[str, InvocationDraft],
    Callable[[DraftsProxy], Mapping[str, InvocationDraft]],
]


def build_requests_from_drafts(drafts: DraftsSource) -> CompiledRequest:
    """
    Compile drafts into JMAP method calls.

    Args:
        drafts: A mapping of method call id → draft, or a function that
            receives a DraftsProxy and returns such a mapping

    Returns:
        The compiled method calls and the set of method names used
    """
    if callable(drafts):
        drafts = drafts(DraftsProxy())
    return InvocationDraft.create_invocations_from_drafts(drafts)
