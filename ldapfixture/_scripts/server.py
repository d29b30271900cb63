import sys

from twisted.internet import reactor

from ldaptor import usage
from ldapfixture import config, lifecycle


exitStatus = 0


def error(fail):
    print("fail:", fail.getErrorMessage(), file=sys.stderr)
    global exitStatus
    exitStatus = 1
    reactor.stop()


def main(cfg):
    manager = lifecycle.LifecycleManager(cfg)

    def _cbStarted(port):
        reactor.addSystemEventTrigger("before", "shutdown", manager.stop)
        return port

    def _start():
        d = manager.start()
        d.addCallbacks(_cbStarted, error)

    reactor.callWhenRunning(_start)
    reactor.run()
    sys.exit(exitStatus)


class MyOptions(usage.Options):
    """Run a disposable LDAP server until interrupted"""

    optParameters = (
        ("working-directory", None, None, "directory holding the server data"),
        ("port-floor", None, None, "lowest TCP port to listen on"),
        ("seed-ldif", None, None, "LDIF file loaded at startup"),
    )

    def postOptions_port_floor(self):
        val = self.opts["port-floor"]
        if val is not None:
            try:
                val = int(val)
            except ValueError:
                raise usage.UsageError("port-floor value must be numeric")
            self.opts["port-floor"] = val


def console_script():
    from twisted.python import log

    log.startLogging(sys.stderr, setStdout=0)

    try:
        opts = MyOptions()
        opts.parseOptions()
    except usage.UsageError as ue:
        sys.stderr.write(f"{sys.argv[0]}: {ue}\n")
        sys.exit(1)

    cfg = config.FixtureConfig(
        workingDirectory=opts["working-directory"],
        portFloor=opts["port-floor"],
        seedLDIF=opts["seed-ldif"],
    )
    main(cfg)


if __name__ == "__main__":
    sys.exit(console_script())
