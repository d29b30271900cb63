"""
Test cases for ldapfixture.service
"""

import os

from twisted.internet import defer, protocol, reactor
from twisted.trial import unittest

from ldaptor import interfaces as ldaptor_interfaces

from ldapfixture import context, partition, portalloc, service, serviceconfig
from ldapfixture.errors import AuthenticationFailed, ServiceUnreachable


def makeConfig(testCase, shutdownHookEnabled=False):
    cfg = serviceconfig.newConfig()
    cfg = serviceconfig.withPartitions(cfg, [partition.build()])
    cfg = serviceconfig.withWorkingDirectory(cfg, os.path.abspath(testCase.mktemp()))
    cfg = serviceconfig.withPort(cfg, portalloc.allocate(20000))
    cfg = serviceconfig.withShutdownHook(cfg, shutdownHookEnabled)
    return cfg


class EmbeddedDirectoryServiceTests(unittest.TestCase):
    def setUp(self):
        self.cfg = makeConfig(self, shutdownHookEnabled=True)
        self.service = service.EmbeddedDirectoryService(self.cfg)
        self.addCleanup(self.service.shutdown)
        return self.service.startup()

    def test_bootstrap(self):
        wd = self.cfg.workingDirectory
        self.assertTrue(os.path.isfile(os.path.join(wd, "ou=system.ldif")))
        self.assertTrue(
            os.path.isfile(os.path.join(wd, "ou=system.dir", "uid=admin.ldif"))
        )
        self.assertTrue(os.path.isfile(os.path.join(wd, "o=sevenseas.ldif")))

    def test_indexedAttributes(self):
        self.assertEqual(
            self.service.indexedAttributes,
            {"sevenSeas": partition.build().indexedAttributes},
        )

    def test_adapter(self):
        self.assertIs(
            ldaptor_interfaces.IConnectedLDAPEntry(self.service), self.service.root
        )

    @defer.inlineCallbacks
    def test_authenticate(self):
        entry = yield self.service.authenticate(
            context.ADMIN_PRINCIPAL, context.ADMIN_CREDENTIAL
        )
        self.assertEqual(entry.dn.getText(), context.ADMIN_PRINCIPAL)

    def test_authenticate_wrongCredential(self):
        d = self.service.authenticate(context.ADMIN_PRINCIPAL, "wrong")
        return self.assertFailure(d, AuthenticationFailed)

    def test_authenticate_unknownPrincipal(self):
        d = self.service.authenticate("uid=nobody,ou=system", "secret")
        return self.assertFailure(d, AuthenticationFailed)

    @defer.inlineCallbacks
    def test_shutdownHook(self):
        self.assertIsNotNone(self.service._shutdownTrigger)

        yield self.service.shutdown()

        self.assertIsNone(self.service._shutdownTrigger)
        self.assertIsNone(self.service.listeningPort)


class BusyPortTests(unittest.TestCase):
    def setUp(self):
        self.cfg = makeConfig(self)
        f = protocol.ServerFactory()
        f.protocol = protocol.Protocol
        self.blocker = reactor.listenTCP(
            self.cfg.port, f, interface=portalloc.LOOPBACK
        )
        self.addCleanup(self.blocker.stopListening)

    def test_startup(self):
        s = service.EmbeddedDirectoryService(self.cfg)
        d = self.assertFailure(s.startup(), ServiceUnreachable)
        d.addCallback(lambda _: s.shutdown())
        return d

    def test_getContext(self):
        env = serviceconfig.toEnvironment(self.cfg)
        env[serviceconfig.PROVIDER_URL] = context.SYSTEM_SUFFIX
        env[serviceconfig.SECURITY_PRINCIPAL] = context.ADMIN_PRINCIPAL
        env[serviceconfig.SECURITY_CREDENTIALS] = context.ADMIN_CREDENTIAL

        d = self.assertFailure(
            service.ServiceContextFactory().getContext(env), ServiceUnreachable
        )

        def cb(_):
            self.assertIsNone(service.getService(self.cfg.port))

        d.addCallback(cb)
        return d


class ServiceContextFactoryTests(unittest.TestCase):
    def setUp(self):
        self.cfg = makeConfig(self)
        self.env = serviceconfig.toEnvironment(self.cfg)
        self.env[serviceconfig.PROVIDER_URL] = context.SYSTEM_SUFFIX
        self.env[serviceconfig.SECURITY_PRINCIPAL] = context.ADMIN_PRINCIPAL
        self.env[serviceconfig.SECURITY_CREDENTIALS] = context.ADMIN_CREDENTIAL
        self.env[serviceconfig.SECURITY_AUTHENTICATION] = "simple"
        self.factory = service.ServiceContextFactory()

    def shutdownEnvironment(self, credential=context.SHUTDOWN_CREDENTIAL):
        env = dict(self.env)
        env[serviceconfig.SHUTDOWN] = "true"
        env[serviceconfig.SECURITY_CREDENTIALS] = credential
        return env

    def test_unsupportedAuthentication(self):
        self.env[serviceconfig.SECURITY_AUTHENTICATION] = "strong"
        d = self.factory.getContext(self.env)
        return self.assertFailure(d, AuthenticationFailed)

    @defer.inlineCallbacks
    def test_startAndShutdown(self):
        ctx = yield self.factory.getContext(self.env)
        self.assertIsNotNone(service.getService(self.cfg.port))
        self.assertEqual(ctx.baseDN.getText(), context.SYSTEM_SUFFIX)
        yield ctx.close()

        yield self.factory.getContext(self.shutdownEnvironment())

        self.assertIsNone(service.getService(self.cfg.port))

    @defer.inlineCallbacks
    def test_shutdown_wrongCredential(self):
        ctx = yield self.factory.getContext(self.env)
        yield ctx.close()
        self.addCleanup(self.factory.getContext, self.shutdownEnvironment())

        yield self.assertFailure(
            self.factory.getContext(self.shutdownEnvironment("wrong")),
            AuthenticationFailed,
        )
        self.assertIsNotNone(service.getService(self.cfg.port))

    def test_shutdown_notRunning(self):
        d = self.factory.getContext(self.shutdownEnvironment())
        return self.assertFailure(d, ServiceUnreachable)
