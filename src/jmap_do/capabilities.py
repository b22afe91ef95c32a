"""
Capability resolution for JMAP requests.

Every JMAP request declares the capabilities it uses. The entity part of
each method name ("Email" in "Email/get") is looked up in a table of
entity → capability URI.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

__all__ = [
    "CORE_CAPABILITY",
    "KNOWN_CAPABILITIES",
    "get_capabilities_for_method_calls",
    "build_capability_map",
]

logger = logging.getLogger(__name__)

CORE_CAPABILITY = "urn:ietf:params:jmap:core"

# Entities associated with their JMAP capability identifiers.
KNOWN_CAPABILITIES: dict[str, str] = {
    # RFC8620
    "Core": CORE_CAPABILITY,
    # RFC8621
    "Mailbox": "urn:ietf:params:jmap:mail",
    "Thread": "urn:ietf:params:jmap:mail",
    "Email": "urn:ietf:params:jmap:mail",
    "SearchSnippet": "urn:ietf:params:jmap:mail",
    "Identity": "urn:ietf:params:jmap:submission",
    "EmailSubmission": "urn:ietf:params:jmap:submission",
    "VacationResponse": "urn:ietf:params:jmap:vacationresponse",
}

_ENTITY_RE = re.compile(r"^(\w+)/")


def build_capability_map(custom: Mapping[str, str] | None = None) -> dict[str, str]:
    """
    Merge custom entity capabilities with the known table.

    Known entries take precedence over custom ones with the same entity.

    Example:
        capabilities = build_capability_map({
            "Sandwich": "urn:bigco:params:jmap:sandwich",
        })
    """
    merged = dict(custom or {})
    merged.update(KNOWN_CAPABILITIES)
    return merged


def get_capabilities_for_method_calls(
    method_names: Iterable[str],
    available_capabilities: Mapping[str, str],
) -> set[str]:
    """
    Determine the capabilities required by a set of method names.

    Entities without a registered capability contribute nothing. The core
    capability is added whenever any other capability is required, since
    some servers (Fastmail, for one) reject requests without it.

    Args:
        method_names: Method names such as "Email/get"
        available_capabilities: Entity name → capability URI

    Returns:
        The set of capability URIs to declare in "using"
    """
    capabilities: set[str] = set()

    for method in method_names:
        match = _ENTITY_RE.match(method)
        if not match:
            continue
        entity = match.group(1)
        capability = available_capabilities.get(entity)
        if capability:
            capabilities.add(capability)
        else:
            logger.debug("No capability registered for entity %s", entity)

    if capabilities:
        capabilities.add(CORE_CAPABILITY)

    return capabilities
