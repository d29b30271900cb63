"""
Embedded LDAP server: an ldaptor LDAPServer serving an LDIF tree
database kept in the working directory.

The service is driven through L{ServiceContextFactory.getContext}: a
startup environment starts it (once per port) and returns an
authenticated L{AdminContext}, a shutdown environment stops it.
"""

import os

from twisted.internet import defer, error, protocol
from twisted.internet.endpoints import (
    TCP4ClientEndpoint,
    TCP4ServerEndpoint,
    connectProtocol,
)
from twisted.python import components, log
from zope.interface import implementer

from ldaptor import interfaces as ldaptor_interfaces, ldiftree
from ldaptor.protocols.ldap import distinguishedname, ldaperrors, ldapserver

from ldapfixture import interfaces, serviceconfig
from ldapfixture.context import (
    ADMIN_CREDENTIAL,
    ADMIN_PRINCIPAL,
    SIMPLE_AUTHENTICATION,
    SYSTEM_SUFFIX,
    ROOT_SUFFIX,
    AdminClient,
    AdminContext,
)
from ldapfixture.errors import AuthenticationFailed, ServiceUnreachable
from ldapfixture.portalloc import LOOPBACK

# port -> EmbeddedDirectoryService
_services = {}


def getService(port):
    return _services.get(port)


class DirectoryServer(ldapserver.LDAPServer):
    """An LDAP server connection tracked by its service."""

    def __init__(self):
        ldapserver.LDAPServer.__init__(self)
        self._whenLost = []

    def connectionMade(self):
        ldapserver.LDAPServer.connectionMade(self)
        self.factory.connections.add(self)

    def connectionLost(self, reason=protocol.connectionDone):
        ldapserver.LDAPServer.connectionLost(self, reason)
        self.factory.connections.discard(self)
        waiters, self._whenLost = self._whenLost, []
        for d in waiters:
            d.callback(None)

    def whenDisconnected(self):
        if not self.connected:
            return defer.succeed(None)
        d = defer.Deferred()
        self._whenLost.append(d)
        return d


class EmbeddedDirectoryService(protocol.ServerFactory):
    protocol = DirectoryServer

    def __init__(self, config, reactor=None):
        if reactor is None:
            from twisted.internet import reactor
        self.reactor = reactor
        self.config = config
        self.root = None
        self.listeningPort = None
        self.connections = set()
        self.indexedAttributes = {}
        self._shutdownTrigger = None

    @defer.inlineCallbacks
    def startup(self):
        if self.config.port is None:
            raise ValueError("No port configured for the directory service")
        path = self.config.workingDirectory
        if not os.path.isdir(path):
            os.makedirs(path)
        self.root = ldiftree.LDIFTreeEntry(path)

        yield self._bootstrapSystemPartition()
        for spec in sorted(self.config.partitions, key=lambda p: p.name):
            yield self._addPartition(spec)

        endpoint = TCP4ServerEndpoint(
            self.reactor, self.config.port, interface=LOOPBACK
        )
        try:
            self.listeningPort = yield endpoint.listen(self)
        except error.CannotListenError as e:
            raise ServiceUnreachable(LOOPBACK, self.config.port) from e

        if self.config.shutdownHookEnabled:
            self._shutdownTrigger = self.reactor.addSystemEventTrigger(
                "before", "shutdown", self._shutdownHook
            )
        log.msg(
            "Directory service listening on %s:%d, data in %s"
            % (LOOPBACK, self.config.port, path)
        )

    def _addChild(self, parent, dn, attributes):
        rdn = dn.split()[0]
        return defer.maybeDeferred(parent.addChild, rdn.getText(), attributes)

    @defer.inlineCallbacks
    def _bootstrapSystemPartition(self):
        system = yield self._addChild(
            self.root,
            distinguishedname.DistinguishedName(SYSTEM_SUFFIX),
            {
                "objectClass": ["top", "organizationalUnit", "extensibleObject"],
                "ou": ["system"],
            },
        )
        yield self._addChild(
            system,
            distinguishedname.DistinguishedName(ADMIN_PRINCIPAL),
            {
                "objectClass": [
                    "top",
                    "person",
                    "organizationalPerson",
                    "inetOrgPerson",
                ],
                "uid": ["admin"],
                "cn": ["system administrator"],
                "sn": ["administrator"],
                "displayName": ["Directory Superuser"],
                "userPassword": [ADMIN_CREDENTIAL],
            },
        )

    @defer.inlineCallbacks
    def _addPartition(self, spec):
        suffix = distinguishedname.DistinguishedName(spec.suffix)
        parent = yield self.root.lookup(suffix.up())
        yield self._addChild(parent, suffix, spec.contextEntry)
        self.indexedAttributes[spec.name] = spec.indexedAttributes
        log.msg(
            "Created partition %s at %s, indexed attributes: %s"
            % (spec.name, spec.suffix, ", ".join(sorted(spec.indexedAttributes)))
        )

    @defer.inlineCallbacks
    def authenticate(self, principal, credential):
        try:
            entry = yield self.root.lookup(principal)
            yield entry.bind(credential)
        except (ldaperrors.LDAPNoSuchObject, ldaperrors.LDAPInvalidCredentials) as e:
            raise AuthenticationFailed(principal) from e
        return entry

    def _shutdownHook(self):
        self._shutdownTrigger = None
        if _services.get(self.config.port) is self:
            del _services[self.config.port]
        return self.shutdown()

    def shutdown(self):
        """
        Stop listening and drop every open connection.

        @return: A Deferred that fires once all connections are gone.
        """
        if self._shutdownTrigger is not None:
            self.reactor.removeSystemEventTrigger(self._shutdownTrigger)
            self._shutdownTrigger = None
        waiting = []
        if self.listeningPort is not None:
            waiting.append(defer.maybeDeferred(self.listeningPort.stopListening))
            self.listeningPort = None
        for proto in list(self.connections):
            waiting.append(proto.whenDisconnected())
            proto.transport.loseConnection()

        d = defer.gatherResults(waiting, consumeErrors=True)

        def _done(_):
            log.msg("Directory service on port %s stopped" % (self.config.port,))

        d.addCallback(_done)
        return d


components.registerAdapter(
    lambda x: x.root,
    EmbeddedDirectoryService,
    ldaptor_interfaces.IConnectedLDAPEntry,
)


@implementer(interfaces.IServiceContextFactory)
class ServiceContextFactory:
    reactor = None

    def _getReactor(self):
        if self.reactor is None:
            from twisted.internet import reactor

            return reactor
        return self.reactor

    def getContext(self, environment):
        if environment.get(serviceconfig.SHUTDOWN) == "true":
            return self._shutdown(environment)
        return self._open(environment)

    @defer.inlineCallbacks
    def _startService(self, config):
        service = EmbeddedDirectoryService(config, reactor=self._getReactor())
        _services[config.port] = service
        try:
            yield service.startup()
        except Exception:
            del _services[config.port]
            yield service.shutdown()
            raise
        return service

    @defer.inlineCallbacks
    def _connect(self, port):
        endpoint = TCP4ClientEndpoint(self._getReactor(), LOOPBACK, port)
        try:
            client = yield connectProtocol(endpoint, AdminClient())
        except error.ConnectError as e:
            raise ServiceUnreachable(LOOPBACK, port) from e
        return client

    @defer.inlineCallbacks
    def _open(self, environment):
        mode = environment.get(
            serviceconfig.SECURITY_AUTHENTICATION, SIMPLE_AUTHENTICATION
        )
        if mode != SIMPLE_AUTHENTICATION:
            raise AuthenticationFailed("Unsupported authentication mode %r" % mode)

        config = serviceconfig.fromEnvironment(environment)
        if getService(config.port) is None:
            yield self._startService(config)

        client = yield self._connect(config.port)
        context = AdminContext(
            client, environment.get(serviceconfig.PROVIDER_URL, ROOT_SUFFIX)
        )
        try:
            yield context.bind(
                environment.get(serviceconfig.SECURITY_PRINCIPAL, ""),
                environment.get(serviceconfig.SECURITY_CREDENTIALS, ""),
            )
        except Exception:
            yield context.close()
            raise
        return context

    @defer.inlineCallbacks
    def _shutdown(self, environment):
        port = environment.get(serviceconfig.PORT)
        service = None
        if port is not None:
            port = int(port)
            service = getService(port)
        if service is None:
            raise ServiceUnreachable(LOOPBACK, port)

        yield service.authenticate(
            environment.get(serviceconfig.SECURITY_PRINCIPAL, ""),
            environment.get(serviceconfig.SECURITY_CREDENTIALS, ""),
        )
        del _services[port]
        yield service.shutdown()
