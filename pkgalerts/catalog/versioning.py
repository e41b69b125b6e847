"""Total ordering for catalog version strings.

Catalog versions are opaque strings. Those that parse as PEP 440 versions
compare as ``packaging`` versions, so ``1.10`` sorts above ``1.9``,
``2.0rc1`` below ``2.0`` and ``v1.0`` equals ``1.0.0``. Strings that do not
parse sort below every parseable version and are ordered lexicographically
among themselves.
"""
from __future__ import annotations

from collections.abc import Iterable

from packaging.version import InvalidVersion, Version


def version_key(value: str) -> tuple:
    try:
        return (1, Version(value))
    except InvalidVersion:
        return (0, value)


def is_newer(candidate: str | None, current: str | None) -> bool:
    """True when *candidate* is non-null and strictly above *current*.

    A null *current* is below every non-null candidate.
    """
    if candidate is None:
        return False
    if current is None:
        return True
    return version_key(candidate) > version_key(current)


def max_version(values: Iterable[str | None]) -> str | None:
    present = [value for value in values if value is not None]
    if not present:
        return None
    return max(present, key=version_key)
