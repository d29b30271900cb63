#!/usr/bin/python

import codecs
import os
import re

from setuptools import setup


here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    with codecs.open(os.path.join(here, *parts), 'r') as f:
        return f.read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]",
                              version_file, re.M)
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


if __name__ == '__main__':
    setup(
        name="ldapfixture",
        version=find_version("ldapfixture", "__init__.py"),
        description="Disposable embedded LDAP server for Twisted tests",
        long_description="""
ldapfixture starts a throw-away LDAP server on loopback for the
duration of a test run:

- picks a free TCP port and publishes it in the environment.

- seeds the server with a sevenSeas partition and LDIF data.

- shuts it down and deletes its working directory afterwards.
""".strip(),
        author="The ldapfixture developers",
        license="MIT",
        python_requires=">=3.6",
        packages=[
            "ldapfixture",
            "ldapfixture._scripts",
            "ldapfixture.test",
        ],
        package_data={"ldapfixture": ["init.ldif"]},
        install_requires=[
            "ldaptor",
            "Twisted",
            "zope.interface",
        ],
        entry_points={
            "console_scripts": [
                "ldapfixture-server = ldapfixture._scripts.server:console_script",
            ],
        },
    )
