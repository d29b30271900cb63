"""Disposable embedded LDAP server for Twisted test suites"""
__version__ = "1.0.0"

__title__ = "ldapfixture"
__description__ = "Disposable embedded LDAP server for Twisted test suites"

__license__ = "MIT"
__author__ = "The ldapfixture developers"
__copyright__ = "Copyright (c) 2019-2026 {}".format(__author__)
