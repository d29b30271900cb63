import os.path
import configparser

from twisted.python import util


class InvalidConfigurationError(Exception):
    """Invalid fixture configuration"""

    def __init__(self, option, value):
        Exception.__init__(self, option, value)
        self.option = option
        self.value = value

    def __str__(self):
        return "%s: %s = %r" % (self.__doc__, self.option, self.value)


class FixtureConfig:
    workingDirectory = None
    portFloor = None
    seedLDIF = None
    portProperty = None

    def __init__(
        self, workingDirectory=None, portFloor=None, seedLDIF=None, portProperty=None
    ):
        if workingDirectory is not None:
            self.workingDirectory = workingDirectory
        if portFloor is not None:
            self.portFloor = int(portFloor)
        if seedLDIF is not None:
            self.seedLDIF = seedLDIF
        if portProperty is not None:
            self.portProperty = portProperty

    def getWorkingDirectory(self):
        if self.workingDirectory is not None:
            return self.workingDirectory
        return loadConfig().get("fixture", "working-directory")

    def getPortFloor(self):
        if self.portFloor is not None:
            return self.portFloor
        value = loadConfig().get("fixture", "port-floor")
        try:
            return int(value)
        except ValueError:
            raise InvalidConfigurationError("port-floor", value)

    def getSeedLDIF(self):
        if self.seedLDIF is not None:
            return self.seedLDIF
        return loadConfig().get("fixture", "seed-ldif")

    def getPortProperty(self):
        if self.portProperty is not None:
            return self.portProperty
        return loadConfig().get("fixture", "port-property")

    def copy(self, **kw):
        if "workingDirectory" not in kw:
            kw["workingDirectory"] = self.workingDirectory
        if "portFloor" not in kw:
            kw["portFloor"] = self.portFloor
        if "seedLDIF" not in kw:
            kw["seedLDIF"] = self.seedLDIF
        if "portProperty" not in kw:
            kw["portProperty"] = self.portProperty
        return self.__class__(**kw)


DEFAULTS = {
    "fixture": {
        "working-directory": "server-work",
        "port-floor": "1024",
        "seed-ldif": util.sibpath(__file__, "init.ldif"),
        "port-property": "LDAP_PORT",
    },
}

CONFIG_FILES = [
    "/etc/ldapfixture/global.cfg",
    os.path.expanduser("~/.ldapfixture/global.cfg"),
]

__config = None


def loadConfig(configFiles=None, reload=False):
    """
    Load configuration file.
    """
    global __config
    if __config is None or reload:
        x = configparser.ConfigParser(interpolation=None)

        for section, options in DEFAULTS.items():
            x.add_section(section)
            for option, value in options.items():
                x.set(section, option, value)

        if configFiles is None:
            configFiles = CONFIG_FILES
        x.read(configFiles)
        __config = x
    return __config
