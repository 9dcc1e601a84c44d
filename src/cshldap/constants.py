"""Constants for the CSH LDAP client."""

import re

__all__ = [
    "GROUP_BASE_DN",
    "GROUP_DN_REGEX",
    "LDAP_POOL_SIZE",
    "LDAP_SRV_RECORD",
    "LDAP_TIMEOUT",
    "LOCK_ATTR",
    "MEMBER_OBJECT_CLASS",
    "USER_ATTRS",
    "USER_BASE_DN",
]

LDAP_SRV_RECORD = "_ldap._tcp.csh.rit.edu"
"""DNS SRV record advertising the LDAP servers."""

LDAP_POOL_SIZE = 5
"""Default maximum number of outstanding LDAP connections."""

LDAP_TIMEOUT = 5.0
"""Timeout (in seconds) for LDAP searches."""

USER_BASE_DN = "cn=users,cn=accounts,dc=csh,dc=rit,dc=edu"
"""Base DN of every user search."""

GROUP_BASE_DN = "cn=groups,cn=accounts,dc=csh,dc=rit,dc=edu"
"""Base DN under which group entries live."""

GROUP_DN_REGEX = re.compile(
    r"cn=(?P<name>\w+),cn=groups,cn=accounts,dc=csh,dc=rit,dc=edu"
)
"""Pattern extracting the group name from a ``memberOf`` value.

Values that don't match (groups elsewhere in the tree, roles, HBAC rules) are
not reported as group memberships.
"""

LOCK_ATTR = "nsAccountLock"
"""Attribute that controls whether an account is locked."""

MEMBER_OBJECT_CLASS = "cshMember"
"""Object class carried by every member entry."""

USER_ATTRS = (
    "cn",
    "uid",
    "memberOf",
    "krbPrincipalName",
    "mail",
    "mobile",
    "ibutton",
    "drinkBalance",
)
"""Attributes requested for every user search."""
