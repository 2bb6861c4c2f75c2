"""
Field name sanitization for index-safe event keys
"""

import re

# Prefixes the analytics API puts in front of core and realtime field names
SOURCE_FIELD_PREFIXES = ("ga:", "rt:")

_WHITESPACE = re.compile(r"\s")
_NOT_IDENTIFIER_CHAR = re.compile(r"[^0-9A-Za-z_]")


def sanitize(raw: str) -> str:
    """
    Normalize a source field name into a safe identifier.

    Strips all whitespace, removes the ``ga:``/``rt:`` prefixes wherever they
    appear, then keeps only ``[0-9A-Za-z_]`` in their original order.
    Never raises; the result may be empty. ``sanitize(sanitize(x)) == sanitize(x)``.
    """
    value = _WHITESPACE.sub("", raw)
    for prefix in SOURCE_FIELD_PREFIXES:
        value = value.replace(prefix, "")
    return _NOT_IDENTIFIER_CHAR.sub("", value)
