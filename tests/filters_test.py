"""Tests for LDAP search filter construction."""

from __future__ import annotations

from bonsai.utils import escape_filter_exp

from cshldap.filters import equality_filter, member_filter, substring_filter


def test_equality_filter() -> None:
    assert equality_filter("uid", "jdoe") == "(uid=jdoe)"
    assert equality_filter("mobile", "+1 585-555-0100") == (
        "(mobile=+1 585-555-0100)"
    )

    # Metacharacters must not change the structure of the filter.
    value = "jdoe)(|(uid=*"
    result = equality_filter("uid", value)
    assert result == f"(uid={escape_filter_exp(value)})"
    assert result.count("(") == 1
    assert result.count(")") == 1
    assert "*" not in result


def test_substring_filter() -> None:
    assert substring_filter("jdoe") == "(|(uid=*jdoe*)(cn=*jdoe*))"

    escaped = escape_filter_exp("a*b\\c")
    assert substring_filter("a*b\\c") == (
        f"(|(uid=*{escaped}*)(cn=*{escaped}*))"
    )
    assert "a*b" not in substring_filter("a*b\\c")


def test_member_filter() -> None:
    assert member_filter() == "(objectClass=cshMember)"
