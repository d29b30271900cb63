"""Errors raised while starting or stopping the embedded LDAP server."""


class LDAPFixtureError(Exception):
    """LDAP fixture error"""

    def __str__(self):
        s = self.__doc__
        if self.args:
            s = ": ".join([s] + [str(x) for x in self.args])
        return s


class NoPortAvailable(LDAPFixtureError):
    """No free TCP port found"""


class CleanupFailed(LDAPFixtureError):
    """Failed to delete working directory"""

    def __init__(self, path):
        LDAPFixtureError.__init__(self, path)
        self.path = path


class AuthenticationFailed(LDAPFixtureError):
    """Authentication to the directory service failed"""


class ServiceUnreachable(LDAPFixtureError):
    """Directory service is unreachable"""


class ImportFailed(LDAPFixtureError):
    """Failed while trying to import LDIF data"""

    def __init__(self, cause):
        LDAPFixtureError.__init__(self, cause)
        self.cause = cause


class ShutdownRequestFailed(LDAPFixtureError):
    """Directory service shutdown request failed"""


class InvalidLifecycleState(LDAPFixtureError):
    """Operation not allowed in the current lifecycle state"""
