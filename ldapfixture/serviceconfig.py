"""
Startup configuration of the embedded LDAP server.

A L{ServiceConfig} is rendered by L{toEnvironment} into the flat
string mapping the service factory reads, the same way the context
handles and the shutdown request are described to it.
"""

from io import BytesIO

from ldaptor.protocols.ldap import ldif

from ldapfixture import ldifimport
from ldapfixture.partition import PartitionSpec

PREFIX = "ldapfixture."

INITIAL_CONTEXT_FACTORY = PREFIX + "factory.initial"
PROVIDER_URL = PREFIX + "provider.url"
SECURITY_PRINCIPAL = PREFIX + "security.principal"
SECURITY_CREDENTIALS = PREFIX + "security.credentials"
SECURITY_AUTHENTICATION = PREFIX + "security.authentication"
SHUTDOWN = PREFIX + "shutdown"

PORT = PREFIX + "port"
WORKING_DIRECTORY = PREFIX + "workingDirectory"
SHUTDOWN_HOOK_ENABLED = PREFIX + "shutdownHookEnabled"
PARTITIONS = PREFIX + "partitions"
PARTITION = PREFIX + "partition.%s.%s"


class ServiceConfig:
    def __init__(
        self,
        partitions=(),
        workingDirectory=None,
        port=None,
        shutdownHookEnabled=True,
    ):
        self.partitions = frozenset(partitions)
        names = [p.name for p in self.partitions]
        if len(set(names)) != len(names):
            raise ValueError("Duplicate partition names: %r" % sorted(names))
        self.workingDirectory = workingDirectory
        self.port = port
        self.shutdownHookEnabled = shutdownHookEnabled

    def copy(self, **kw):
        if "partitions" not in kw:
            kw["partitions"] = self.partitions
        if "workingDirectory" not in kw:
            kw["workingDirectory"] = self.workingDirectory
        if "port" not in kw:
            kw["port"] = self.port
        if "shutdownHookEnabled" not in kw:
            kw["shutdownHookEnabled"] = self.shutdownHookEnabled
        return self.__class__(**kw)

    def __eq__(self, other):
        if not isinstance(other, ServiceConfig):
            return NotImplemented
        return (
            self.partitions == other.partitions
            and self.workingDirectory == other.workingDirectory
            and self.port == other.port
            and self.shutdownHookEnabled == other.shutdownHookEnabled
        )

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return "%s(partitions=%r, workingDirectory=%r, port=%r, shutdownHookEnabled=%r)" % (
            self.__class__.__name__,
            sorted(self.partitions, key=lambda p: p.name),
            self.workingDirectory,
            self.port,
            self.shutdownHookEnabled,
        )


def newConfig():
    return ServiceConfig()


def withPartitions(cfg, specs):
    return cfg.copy(partitions=specs)


def withWorkingDirectory(cfg, path):
    return cfg.copy(workingDirectory=path)


def withPort(cfg, port):
    return cfg.copy(port=port)


def withShutdownHook(cfg, enabled):
    return cfg.copy(shutdownHookEnabled=enabled)


def _contextEntryAsLDIF(spec):
    return ldif.asLDIF(spec.suffix, spec.contextEntry.items()).decode("utf-8")


def toEnvironment(cfg):
    """
    Render `cfg` as the string mapping the service factory expects.
    """
    env = {}
    specs = sorted(cfg.partitions, key=lambda p: p.name)
    env[PARTITIONS] = ",".join(p.name for p in specs)
    for spec in specs:
        env[PARTITION % (spec.name, "suffix")] = spec.suffix
        env[PARTITION % (spec.name, "indexedAttributes")] = ",".join(
            sorted(spec.indexedAttributes)
        )
        env[PARTITION % (spec.name, "contextEntry")] = _contextEntryAsLDIF(spec)
    if cfg.workingDirectory is not None:
        env[WORKING_DIRECTORY] = str(cfg.workingDirectory)
    if cfg.port is not None:
        env[PORT] = str(cfg.port)
    env[SHUTDOWN_HOOK_ENABLED] = "true" if cfg.shutdownHookEnabled else "false"
    return env


def _split(value):
    return [x for x in value.split(",") if x]


def partitionsFromEnvironment(env):
    """Rebuild the L{PartitionSpec}s described by an environment."""
    specs = []
    for name in _split(env.get(PARTITIONS, "")):
        suffix = env[PARTITION % (name, "suffix")]
        indexed = _split(env.get(PARTITION % (name, "indexedAttributes"), ""))
        contextEntry = None
        text = env.get(PARTITION % (name, "contextEntry"))
        if text:
            records = list(ldifimport.readRecords(BytesIO(text.encode("utf-8"))))
            if len(records) != 1:
                raise ValueError(
                    "Partition %r context entry must hold one LDIF entry" % (name,)
                )
            contextEntry = records[0].attributes
        specs.append(PartitionSpec(name, suffix, indexed, contextEntry))
    return specs


def fromEnvironment(env):
    """Rebuild the L{ServiceConfig} described by an environment."""
    port = env.get(PORT)
    if port is not None:
        port = int(port)
    return ServiceConfig(
        partitions=partitionsFromEnvironment(env),
        workingDirectory=env.get(WORKING_DIRECTORY),
        port=port,
        shutdownHookEnabled=env.get(SHUTDOWN_HOOK_ENABLED, "true") == "true",
    )
