"""
Start and stop the embedded LDAP server used as a test fixture.

A successful L{LifecycleManager.start} leaves a server listening on
loopback, seeded with the sevenSeas partition and the seed LDIF, and
publishes its port in C{os.environ}. L{LifecycleManager.stop} shuts it
down, deletes its working directory and withdraws the port.
"""

import os

from twisted.internet import defer
from twisted.python import log

from ldapfixture import (
    config,
    context,
    ldifimport,
    partition,
    portalloc,
    serviceconfig,
    workdir,
)
from ldapfixture.errors import (
    ImportFailed,
    InvalidLifecycleState,
    ShutdownRequestFailed,
)

STOPPED = "Stopped"
STARTING = "Starting"
RUNNING = "Running"
STOPPING = "Stopping"


class LifecycleManager:
    principal = context.ADMIN_PRINCIPAL
    credential = context.ADMIN_CREDENTIAL
    shutdownPrincipal = context.SHUTDOWN_PRINCIPAL
    shutdownCredential = context.SHUTDOWN_CREDENTIAL

    def __init__(self, fixtureConfig=None):
        if fixtureConfig is None:
            fixtureConfig = config.FixtureConfig()
        self.fixtureConfig = fixtureConfig
        self.configuration = serviceconfig.newConfig()
        self.systemContext = None
        self.rootContext = None
        self.port = None
        self.state = STOPPED

    def allocatePort(self):
        return portalloc.allocate(self.fixtureConfig.getPortFloor())

    def start(self):
        """
        Start the server.

        @return: A Deferred firing with the port the server listens on.
        """
        if self.state != STOPPED:
            return defer.fail(InvalidLifecycleState("start", self.state))
        self.state = STARTING
        d = self._start()
        d.addCallbacks(self._started, self._startFailed)
        return d

    @defer.inlineCallbacks
    def _start(self):
        workingDirectory = self.fixtureConfig.getWorkingDirectory()
        workdir.clean(workingDirectory)
        port = self.allocatePort()

        cfg = serviceconfig.newConfig()
        cfg = serviceconfig.withPartitions(cfg, [partition.build()])
        cfg = serviceconfig.withWorkingDirectory(cfg, workingDirectory)
        cfg = serviceconfig.withPort(cfg, port)
        cfg = serviceconfig.withShutdownHook(cfg, False)
        self.configuration = cfg

        self.systemContext, self.rootContext = yield context.openAdminContexts(
            cfg, self.principal, self.credential
        )

        self.port = port
        os.environ[self.fixtureConfig.getPortProperty()] = str(port)

        yield self.importLDIF(self.fixtureConfig.getSeedLDIF())
        return port

    def importLDIF(self, path):
        """Load the LDIF file at `path` through the root context."""
        try:
            f = open(path, "rb")
        except OSError as e:
            return defer.fail(ImportFailed(e))
        d = ldifimport.importAll(self.rootContext, ldifimport.readRecords(f))

        def _close(result):
            f.close()
            return result

        d.addBoth(_close)
        return d

    def _started(self, port):
        self.state = RUNNING
        print("LDAP server started on port [%d]" % port)
        return port

    def _startFailed(self, reason):
        log.msg("LDAP server failed to start: %s" % reason.getErrorMessage())
        d = self._requestShutdown()
        d.addCallback(lambda _: self._discardContexts())

        def _reset(_):
            self._unpublishPort()
            self.configuration = serviceconfig.newConfig()
            self.state = STOPPED
            return reason

        d.addBoth(_reset)
        return d

    def stop(self):
        """
        Shutdown the server.

        Safe to call when already stopped; the working directory is
        removed either way.
        """
        if self.state in (STARTING, STOPPING):
            return defer.fail(InvalidLifecycleState("stop", self.state))
        self.state = STOPPING
        d = self._stop()

        def _stopped(result):
            self.state = STOPPED
            return result

        d.addBoth(_stopped)
        return d

    @defer.inlineCallbacks
    def _stop(self):
        try:
            yield self._requestShutdown()
            yield self._discardContexts()
            workdir.clean(self.fixtureConfig.getWorkingDirectory())
        finally:
            self.configuration = serviceconfig.newConfig()
            self._unpublishPort()

    def _requestShutdown(self):
        d = context.requestShutdown(
            self.configuration, self.shutdownPrincipal, self.shutdownCredential
        )

        def eb(fail):
            fail.trap(ShutdownRequestFailed)
            log.msg("Ignoring failed shutdown request: %s" % fail.getErrorMessage())

        d.addErrback(eb)
        return d

    def _discardContexts(self):
        contexts = [c for c in (self.systemContext, self.rootContext) if c is not None]
        self.systemContext = None
        self.rootContext = None
        return defer.gatherResults([c.close() for c in contexts], consumeErrors=True)

    def _unpublishPort(self):
        self.port = None
        os.environ.pop(self.fixtureConfig.getPortProperty(), None)
