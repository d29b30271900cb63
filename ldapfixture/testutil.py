"""Utilities for writing Twisted unit tests against a live LDAP server."""

import os

from ldapfixture import config, lifecycle


class LDAPServerTestMixin:
    """
    Mix into a L{twisted.trial.unittest.TestCase} to get a fresh,
    seeded LDAP server for every test.

    Set C{fixtureConfig} to a L{config.FixtureConfig} to control the
    server; by default each test gets its own working directory.
    """

    fixtureConfig = None

    def setUp(self):
        cfg = self.fixtureConfig
        if cfg is None:
            cfg = config.FixtureConfig(workingDirectory=self.mktemp())
        self.ldapServer = lifecycle.LifecycleManager(cfg)
        return self.ldapServer.start()

    def tearDown(self):
        return self.ldapServer.stop()

    def getLDAPPort(self):
        prop = self.ldapServer.fixtureConfig.getPortProperty()
        return int(os.environ[prop])
