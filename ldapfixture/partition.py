"""
Partition definitions for the embedded LDAP server.

A partition is a suffix rooted subtree of the directory with its own
context entry and set of indexed attributes.
"""

from ldaptor.protocols.ldap import distinguishedname


class PartitionSpec:
    def __init__(self, name, suffix, indexedAttributes=(), contextEntry=None):
        """
        @param name: name of the partition, unique within a configuration.

        @param suffix: Distinguished Name of the partition root, as a
        string.

        @param indexedAttributes: names of the attributes to index.

        @param contextEntry: attributes of the partition root entry. A
        mapping of attribute types to lists of attribute values.
        """
        if not suffix:
            raise ValueError("Partition %r needs a suffix" % (name,))
        self.name = name
        self.suffix = distinguishedname.DistinguishedName(suffix).getText()
        self.indexedAttributes = frozenset(indexedAttributes)
        self.contextEntry = {}
        if contextEntry is not None:
            for k, vs in contextEntry.items():
                values = self.contextEntry.setdefault(k, [])
                for v in vs:
                    if v not in values:
                        values.append(v)

    def __eq__(self, other):
        if not isinstance(other, PartitionSpec):
            return NotImplemented
        return (
            self.name == other.name
            and self.suffix == other.suffix
            and self.indexedAttributes == other.indexedAttributes
            and self.contextEntry == other.contextEntry
        )

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash((self.name, self.suffix))

    def __repr__(self):
        return "%s(%r, %r, indexedAttributes=%r, contextEntry=%r)" % (
            self.__class__.__name__,
            self.name,
            self.suffix,
            sorted(self.indexedAttributes),
            self.contextEntry,
        )


def build():
    """Return the seed partition of the fixture, o=sevenseas."""
    return PartitionSpec(
        name="sevenSeas",
        suffix="o=sevenseas",
        indexedAttributes={"objectClass", "o"},
        contextEntry={
            "objectClass": ["top", "organization"],
            "o": ["sevenseas"],
        },
    )
