"""Data models for raw LDAP entries."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["LDAPEntryData"]


@dataclass
class LDAPEntryData:
    """A search result entry, decoupled from the LDAP library types.

    Attribute values are kept in the order the server returned them. LDAP
    does not guarantee any ordering of values, so that order may differ
    between searches.
    """

    dn: str
    """Distinguished name of the entry."""

    attributes: dict[str, list[str]] = field(default_factory=dict)
    """Mapping of attribute name to its values."""

    def get_values(self, attr: str) -> list[str] | None:
        """Return the values of an attribute, ignoring case of its name.

        Parameters
        ----------
        attr
            Name of the attribute.

        Returns
        -------
        list of str or None
            Values of the attribute, or `None` if the entry doesn't have it.
        """
        if attr in self.attributes:
            return self.attributes[attr]
        wanted = attr.lower()
        for name, values in self.attributes.items():
            if name.lower() == wanted:
                return values
        return None
