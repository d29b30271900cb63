"""Remove the on-disk state of the embedded LDAP server."""

import os
import shutil

from ldapfixture.errors import CleanupFailed


def clean(path):
    """
    Recursively delete `path` if it exists.

    Raises L{CleanupFailed} when the path is still there afterwards.
    """
    if os.path.exists(path):
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise CleanupFailed(path) from e

    if os.path.exists(path):
        raise CleanupFailed(path)
