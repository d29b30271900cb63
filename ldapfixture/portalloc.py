"""Find a free TCP port for the embedded LDAP server."""

import errno
import socket

from ldapfixture.errors import NoPortAvailable

LOOPBACK = "127.0.0.1"

MIN_PORT_NUMBER = 1
MAX_PORT_NUMBER = 49151


def isAvailable(port, interface=LOOPBACK):
    """
    Return whether `port` can be bound on `interface` right now.

    Nothing is reserved; another process may grab the port as soon as
    this returns.
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((interface, port))
    except OSError as e:
        if e.errno in (errno.EADDRINUSE, errno.EACCES):
            return False
        raise
    finally:
        s.close()
    return True


def allocate(floor, interface=LOOPBACK, ceiling=MAX_PORT_NUMBER):
    """
    Return the first port at or above `floor` which is free on
    `interface`.
    """
    if floor < MIN_PORT_NUMBER or floor > ceiling:
        raise ValueError("Invalid start port: %s" % (floor,))

    for port in range(floor, ceiling + 1):
        if isAvailable(port, interface):
            return port
    raise NoPortAvailable(floor, ceiling)
