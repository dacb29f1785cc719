"""Repository scope patterns.

A pattern is one of:
- ``owner/name``: exact match
- ``owner/*``: every repository of one owner
- ``*/name``: a repository name under any owner

Comparison is exact-token and case-sensitive. ``*/*`` and patterns without
a ``/`` never match.
"""

from collections.abc import Iterable

from ..exceptions import MalformedResourceError

WILDCARD = "*"


def parse_resource(resource: str) -> tuple[str, str]:
    """Split an ``owner/name`` identifier.

    Raises:
        MalformedResourceError: If the identifier is not exactly two
            non-empty segments separated by ``/``.
    """
    owner, sep, name = resource.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise MalformedResourceError(resource)
    return owner, name


def _matches_parsed(resource: str, owner: str, name: str, pattern: str) -> bool:
    if pattern == resource:
        return True

    pattern_owner, sep, pattern_name = pattern.partition("/")
    if not sep:
        return False
    if pattern_owner == WILDCARD and pattern_name == WILDCARD:
        return False

    if pattern_name == WILDCARD:
        return pattern_owner == owner
    if pattern_owner == WILDCARD:
        return pattern_name == name
    return False


def matches(resource: str, pattern: str) -> bool:
    """Check whether a repository matches one scope pattern.

    Raises:
        MalformedResourceError: If ``resource`` is not ``owner/name``.
    """
    owner, name = parse_resource(resource)
    return _matches_parsed(resource, owner, name, pattern)


def matches_any(resource: str, patterns: Iterable[str]) -> bool:
    """Check whether a repository matches any pattern. Empty -> False."""
    owner, name = parse_resource(resource)
    return any(_matches_parsed(resource, owner, name, p) for p in patterns)
