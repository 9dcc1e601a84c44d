"""Construction of LDAP search filters."""

from __future__ import annotations

from bonsai.utils import escape_filter_exp

from .constants import MEMBER_OBJECT_CLASS

__all__ = ["equality_filter", "member_filter", "substring_filter"]


def equality_filter(attr: str, value: str) -> str:
    """Build a filter matching an attribute value exactly.

    Parameters
    ----------
    attr
        Attribute to match.
    value
        Value to match. Filter metacharacters are escaped.

    Returns
    -------
    str
        LDAP search filter.
    """
    return f"({attr}={escape_filter_exp(value)})"


def member_filter() -> str:
    """Build a filter matching every member entry."""
    return f"(objectClass={MEMBER_OBJECT_CLASS})"


def substring_filter(query: str) -> str:
    """Build a filter for a username or full name containing a string.

    Parameters
    ----------
    query
        String to search for. Filter metacharacters, including ``*``, are
        escaped so they match literally.

    Returns
    -------
    str
        LDAP search filter.
    """
    escaped = escape_filter_exp(query)
    return f"(|(uid=*{escaped}*)(cn=*{escaped}*))"
