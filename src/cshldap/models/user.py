"""Models for CSH member records and changes to them."""

from __future__ import annotations

from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..constants import GROUP_BASE_DN, GROUP_DN_REGEX
from ..exceptions import DecodeError
from .ldap import LDAPEntryData

__all__ = [
    "LDAPUser",
    "LDAPUserChangeSet",
    "get_groups",
]


def get_groups(member_of: list[str]) -> list[str]:
    """Extract group names from the values of a ``memberOf`` attribute.

    Parameters
    ----------
    member_of
        DNs of the entries of which the user is a member.

    Returns
    -------
    list of str
        Short names of the groups under the group tree, in the same order as
        the input. Memberships in anything else are dropped.
    """
    groups = []
    for dn in member_of:
        if match := GROUP_DN_REGEX.search(dn):
            groups.append(match.group("name"))
    return groups


class LDAPUser(BaseModel):
    """A CSH member as stored in LDAP.

    Attribute names are the LDAP attribute names when serialized, so this
    model can be converted to JSON for clients that expect the LDAP schema.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    dn: Annotated[
        str,
        Field(
            title="Distinguished name",
            examples=["uid=jdoe,cn=users,cn=accounts,dc=csh,dc=rit,dc=edu"],
        ),
    ]

    cn: Annotated[str, Field(title="Full name", examples=["Jane Doe"])]

    uid: Annotated[str, Field(title="Username", examples=["jdoe"])]

    groups: Annotated[
        list[str],
        Field(title="Groups", examples=[["member", "active"]]),
    ] = []

    krb_principal_name: Annotated[
        str,
        Field(
            title="Kerberos principal",
            examples=["jdoe@CSH.RIT.EDU"],
        ),
    ]

    mail: Annotated[
        list[str],
        Field(title="Email addresses", examples=[["jdoe@csh.rit.edu"]]),
    ] = []

    mobile: Annotated[
        list[str], Field(title="Mobile numbers", examples=[["+15855550100"]])
    ] = []

    ibutton: Annotated[
        list[str], Field(title="iButton IDs", examples=[["1a000001a2b3c401"]])
    ] = []

    drink_balance: Annotated[
        int | None, Field(title="Drink credits", examples=[1000])
    ] = None

    @classmethod
    def from_entry(cls, entry: LDAPEntryData) -> Self:
        """Decode a user from a raw LDAP entry.

        Parameters
        ----------
        entry
            Search result for the user.

        Returns
        -------
        LDAPUser
            Decoded user.

        Raises
        ------
        DecodeError
            Raised if ``cn``, ``uid``, or ``krbPrincipalName`` is missing.
        """
        member_of = _get_list(entry, "memberOf")
        return cls(
            dn=entry.dn,
            cn=_get_one(entry, "cn"),
            uid=_get_one(entry, "uid"),
            groups=get_groups(member_of),
            krb_principal_name=_get_one(entry, "krbPrincipalName"),
            mail=_get_list(entry, "mail"),
            mobile=_get_list(entry, "mobile"),
            ibutton=_get_list(entry, "ibutton"),
            drink_balance=_get_int(entry, "drinkBalance"),
        )

    def to_attributes(self) -> dict[str, list[str]]:
        """Encode the user as LDAP attributes.

        Groups are encoded as DNs under the group tree. Empty multi-valued
        attributes and a missing drink balance are omitted, as LDAP would.

        Returns
        -------
        dict of list of str
            Mapping of LDAP attribute names to values.
        """
        attributes = {
            "cn": [self.cn],
            "uid": [self.uid],
            "krbPrincipalName": [self.krb_principal_name],
        }
        if self.groups:
            attributes["memberOf"] = [
                f"cn={g},{GROUP_BASE_DN}" for g in self.groups
            ]
        for attr in ("mail", "mobile", "ibutton"):
            if values := getattr(self, attr):
                attributes[attr] = list(values)
        if self.drink_balance is not None:
            attributes["drinkBalance"] = [str(self.drink_balance)]
        return attributes


class LDAPUserChangeSet(BaseModel):
    """Changes to make to a user.

    Every attribute left as `None` is not modified. Every other attribute is
    replaced in full by the new value.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    dn: Annotated[str, Field(title="DN of the user to modify", min_length=1)]

    drink_balance: Annotated[int | None, Field(title="New drink credits")] = (
        None
    )

    ibutton: Annotated[
        list[str] | None,
        Field(
            title="New iButton IDs",
            description="Replaces all existing values. Empty removes them.",
        ),
    ] = None

    def to_modifications(self) -> dict[str, list[str]]:
        """Build the replacements for an LDAP modify operation.

        Returns
        -------
        dict of list of str
            Mapping of attribute name to its new values, containing only the
            attributes that are being changed.
        """
        changes: dict[str, list[str]] = {}
        if self.drink_balance is not None:
            changes["drinkBalance"] = [str(self.drink_balance)]
        if self.ibutton is not None:
            changes["ibutton"] = list(self.ibutton)
        return changes


def _get_one(entry: LDAPEntryData, attr: str) -> str:
    values = entry.get_values(attr)
    if not values:
        msg = f"LDAP entry {entry.dn} has no {attr} attribute"
        raise DecodeError(msg, entry.dn)
    return values[0]


def _get_int(entry: LDAPEntryData, attr: str) -> int | None:
    values = entry.get_values(attr)
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


def _get_list(entry: LDAPEntryData, attr: str) -> list[str]:
    return list(entry.get_values(attr) or [])
