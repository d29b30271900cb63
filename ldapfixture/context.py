"""
Authenticated administrative handles into the embedded LDAP server.
"""

from twisted.internet import defer, protocol
from twisted.python import reflect
from zope.interface import implementer

from ldaptor.protocols import pureber, pureldap
from ldaptor.protocols.ldap import distinguishedname, ldapclient, ldaperrors

from ldapfixture import interfaces, serviceconfig
from ldapfixture.errors import AuthenticationFailed, ShutdownRequestFailed

ADMIN_PRINCIPAL = "uid=admin,ou=system"
ADMIN_CREDENTIAL = "secret"
SHUTDOWN_PRINCIPAL = ADMIN_PRINCIPAL
SHUTDOWN_CREDENTIAL = ADMIN_CREDENTIAL
SIMPLE_AUTHENTICATION = "simple"

SYSTEM_SUFFIX = "ou=system"
ROOT_SUFFIX = ""

SERVICE_CONTEXT_FACTORY = "ldapfixture.service.ServiceContextFactory"


class AdminClient(ldapclient.LDAPClient):
    """An LDAP client that can tell when its connection is gone."""

    def __init__(self):
        ldapclient.LDAPClient.__init__(self)
        self._whenLost = []

    def connectionLost(self, reason=protocol.connectionDone):
        ldapclient.LDAPClient.connectionLost(self, reason)
        waiters, self._whenLost = self._whenLost, []
        for d in waiters:
            d.callback(None)

    def whenDisconnected(self):
        if not self.connected:
            return defer.succeed(None)
        d = defer.Deferred()
        self._whenLost.append(d)
        return d


def _raiseForResult(response):
    if response.resultCode != ldaperrors.Success.resultCode:
        raise ldaperrors.get(response.resultCode, response.errorMessage)
    return response


@implementer(interfaces.IAdminContext)
class AdminContext:
    def __init__(self, client, baseDN=ROOT_SUFFIX):
        self.client = client
        self.baseDN = distinguishedname.DistinguishedName(baseDN)

    def _absolute(self, dn):
        dn = distinguishedname.DistinguishedName(dn)
        return distinguishedname.DistinguishedName(
            listOfRDNs=dn.split() + self.baseDN.split()
        )

    def bind(self, principal, credential):
        op = pureldap.LDAPBindRequest(dn=principal, auth=credential)
        d = self.client.send(op)
        d.addCallback(_raiseForResult)

        def eb(fail):
            fail.trap(
                ldaperrors.LDAPInvalidCredentials,
                ldaperrors.LDAPInappropriateAuthentication,
            )
            raise AuthenticationFailed(principal) from fail.value

        d.addErrback(eb)
        d.addCallback(lambda _: self)
        return d

    def createSubcontext(self, dn, attributes):
        dn = self._absolute(dn)
        a = []
        rest = dict(attributes)
        if rest.get("objectClass", None):
            a.append(("objectClass", rest.pop("objectClass")))
        ldapAttrs = []
        for attrType, values in a + sorted(rest.items()):
            ldapValues = pureber.BERSet(
                [pureldap.LDAPAttributeValue(value) for value in values]
            )
            ldapAttrs.append((pureldap.LDAPAttributeDescription(attrType), ldapValues))
        op = pureldap.LDAPAddRequest(entry=dn.getText(), attributes=ldapAttrs)
        d = self.client.send(op)
        d.addCallback(_raiseForResult)
        d.addCallback(lambda _: dn)
        return d

    def close(self):
        d = self.client.whenDisconnected()
        if self.client.connected:
            self.client.unbind()
        return d

    def __repr__(self):
        return "%s(%r)" % (self.__class__.__name__, self.baseDN.getText())


def getInitialContext(environment):
    """
    Hand `environment` to the service factory it names.
    """
    factory = reflect.namedAny(environment[serviceconfig.INITIAL_CONTEXT_FACTORY])
    return defer.maybeDeferred(factory().getContext, environment)


def _authenticatedEnvironment(cfg, principal, credential):
    env = serviceconfig.toEnvironment(cfg)
    env[serviceconfig.SECURITY_PRINCIPAL] = principal
    env[serviceconfig.SECURITY_CREDENTIALS] = credential
    env[serviceconfig.SECURITY_AUTHENTICATION] = SIMPLE_AUTHENTICATION
    env[serviceconfig.INITIAL_CONTEXT_FACTORY] = SERVICE_CONTEXT_FACTORY
    return env


@defer.inlineCallbacks
def openAdminContexts(cfg, principal, credential):
    """
    Open the system and root administrative contexts, starting the
    service described by `cfg` if needed.

    @return: Deferred (systemContext, rootContext)
    """
    env = _authenticatedEnvironment(cfg, principal, credential)

    envFinal = dict(env)
    envFinal[serviceconfig.PROVIDER_URL] = SYSTEM_SUFFIX
    systemContext = yield getInitialContext(envFinal)

    envFinal[serviceconfig.PROVIDER_URL] = ROOT_SUFFIX
    try:
        rootContext = yield getInitialContext(envFinal)
    except Exception:
        yield systemContext.close()
        raise
    return systemContext, rootContext


@defer.inlineCallbacks
def requestShutdown(cfg, principal, credential):
    """
    Ask the service described by `cfg` to shut down.

    Every failure is reported as L{ShutdownRequestFailed}.
    """
    env = _authenticatedEnvironment(cfg, principal, credential)
    env[serviceconfig.PROVIDER_URL] = SYSTEM_SUFFIX
    env[serviceconfig.SHUTDOWN] = "true"
    try:
        yield getInitialContext(env)
    except Exception as e:
        raise ShutdownRequestFailed(e) from e
