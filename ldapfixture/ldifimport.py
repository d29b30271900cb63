"""
Bulk load of LDIF records into a running directory.
"""

from twisted.internet import defer
from twisted.python import log

from ldaptor.protocols.ldap import ldifprotocol

from ldapfixture.errors import ImportFailed


def _text(value):
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value
    return value


class ImportRecord:
    """One entry read from LDIF: a DN and its attributes."""

    def __init__(self, dn, attributes):
        self.dn = dn
        self.attributes = attributes

    @classmethod
    def fromLDIF(cls, dn, data):
        attributes = {}
        for key, vs in data.items():
            values = attributes.setdefault(_text(key), [])
            for v in vs:
                v = _text(v)
                if v not in values:
                    values.append(v)
        return cls(_text(dn), attributes)

    def __eq__(self, other):
        if not isinstance(other, ImportRecord):
            return NotImplemented
        return self.dn == other.dn and self.attributes == other.attributes

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "%s(%r, %r)" % (self.__class__.__name__, self.dn, self.attributes)


class _RecordParser(ldifprotocol.LDIF):
    def __init__(self):
        self.records = []

    def state_IN_ENTRY(self, line):
        if not line:
            self.records.append(ImportRecord.fromLDIF(self.dn, self.data))
        super().state_IN_ENTRY(line)

    def gotEntry(self, obj):
        # Records are built in state_IN_ENTRY to keep value order.
        pass

    def drain(self):
        while self.records:
            yield self.records.pop(0)


def _feed(parser, data):
    try:
        parser.dataReceived(data)
    except Exception:
        # hand out what was parsed before the bad line
        yield from parser.drain()
        raise
    yield from parser.drain()


def readRecords(f, chunkSize=8192):
    """
    Lazily read L{ImportRecord}s from the binary LDIF stream `f`.
    """
    parser = _RecordParser()
    last = b""
    while 1:
        data = f.read(chunkSize)
        if not data:
            break
        last = data
        yield from _feed(parser, data)

    if last and not last.endswith(b"\n"):
        yield from _feed(parser, b"\n")
    if parser.mode == ldifprotocol.IN_ENTRY:
        # last entry lacks its terminating empty line
        yield from _feed(parser, b"\n")
    yield from parser.drain()


@defer.inlineCallbacks
def importAll(context, records):
    """
    Create one entry under `context` for each record, in order.

    The first failure, whether from reading `records` or from creating
    an entry, aborts the import with L{ImportFailed}. Entries created
    before that stay in the directory.

    @return: Deferred firing with the number of entries created.
    """
    count = 0
    try:
        for record in records:
            yield context.createSubcontext(record.dn, record.attributes)
            count += 1
    except Exception as e:
        raise ImportFailed(e) from e
    log.msg("Imported %d LDIF entries" % (count,))
    return count
