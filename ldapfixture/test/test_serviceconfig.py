"""
Test cases for ldapfixture.serviceconfig module.
"""

from twisted.trial import unittest

from ldapfixture import partition, serviceconfig


def sevenSeasConfig():
    cfg = serviceconfig.newConfig()
    cfg = serviceconfig.withPartitions(cfg, [partition.build()])
    cfg = serviceconfig.withWorkingDirectory(cfg, "server-work")
    cfg = serviceconfig.withPort(cfg, 10389)
    cfg = serviceconfig.withShutdownHook(cfg, False)
    return cfg


class ServiceConfigTests(unittest.TestCase):
    def test_defaults(self):
        cfg = serviceconfig.newConfig()
        self.assertEqual(cfg.partitions, frozenset())
        self.assertIsNone(cfg.workingDirectory)
        self.assertIsNone(cfg.port)
        self.assertTrue(cfg.shutdownHookEnabled)

    def test_withDoesNotMutate(self):
        cfg = serviceconfig.newConfig()
        updated = serviceconfig.withPort(cfg, 10389)
        self.assertIsNone(cfg.port)
        self.assertEqual(updated.port, 10389)

    def test_freshConfigsAreIndependent(self):
        self.assertIsNot(serviceconfig.newConfig(), serviceconfig.newConfig())
        self.assertEqual(serviceconfig.newConfig(), serviceconfig.newConfig())

    def test_duplicatePartitionNames(self):
        a = partition.PartitionSpec("example", "dc=example")
        b = partition.PartitionSpec("example", "dc=other")
        self.assertRaises(
            ValueError, serviceconfig.withPartitions, serviceconfig.newConfig(), [a, b]
        )


class ToEnvironmentTests(unittest.TestCase):
    def test_sevenSeas(self):
        env = serviceconfig.toEnvironment(sevenSeasConfig())

        self.assertEqual(
            env,
            {
                "ldapfixture.partitions": "sevenSeas",
                "ldapfixture.partition.sevenSeas.suffix": "o=sevenseas",
                "ldapfixture.partition.sevenSeas.indexedAttributes": "o,objectClass",
                "ldapfixture.partition.sevenSeas.contextEntry": (
                    "dn: o=sevenseas\n"
                    "objectClass: top\n"
                    "objectClass: organization\n"
                    "o: sevenseas\n"
                    "\n"
                ),
                "ldapfixture.workingDirectory": "server-work",
                "ldapfixture.port": "10389",
                "ldapfixture.shutdownHookEnabled": "false",
            },
        )

    def test_deterministic(self):
        self.assertEqual(
            serviceconfig.toEnvironment(sevenSeasConfig()),
            serviceconfig.toEnvironment(sevenSeasConfig()),
        )

    def test_unsetPort(self):
        env = serviceconfig.toEnvironment(serviceconfig.newConfig())
        self.assertNotIn(serviceconfig.PORT, env)
        self.assertNotIn(serviceconfig.WORKING_DIRECTORY, env)
        self.assertEqual(env[serviceconfig.PARTITIONS], "")
        self.assertEqual(env[serviceconfig.SHUTDOWN_HOOK_ENABLED], "true")

    def test_backToConfig(self):
        cfg = sevenSeasConfig()
        self.assertEqual(
            serviceconfig.fromEnvironment(serviceconfig.toEnvironment(cfg)), cfg
        )
