"""
Utilities for building Email property names.
"""

from __future__ import annotations

from typing import Literal, TypeAlias

__all__ = ["HeaderParsedForm", "header_field", "all_header_fields"]

HeaderParsedForm: TypeAlias = Literal[
    "Raw",
    "Text",
    "Addresses",
    "GroupedAddresses",
    "MessageIds",
    "Date",
    "URLs",
]


def header_field(name: str, form: HeaderParsedForm) -> str:
    """
    Generate a key to retrieve a header field.

    Example:
        header_field("Some-Header", "Addresses")  # "header:Some-Header:asAddresses"
    """
    return f"header:{name}:as{form}"


def all_header_fields(name: str, form: HeaderParsedForm) -> str:
    """Like header_field, but retrieves every instance of the header."""
    return f"{header_field(name, form)}:all"
