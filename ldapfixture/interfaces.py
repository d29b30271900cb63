from zope.interface import Interface, Attribute


class IAdminContext(Interface):
    """
    An authenticated connection to the directory, scoped at a base DN.
    """

    baseDN = Attribute("The DN every operation is relative to.")

    def createSubcontext(dn, attributes):
        """
        Add an entry.

        @param dn: DN of the new entry, relative to baseDN.

        @param attributes: a mapping of attribute types to lists of
        values.

        @return: A Deferred that will complete when the entry has been
        added.
        """

    def close():
        """
        Unbind and disconnect.

        @return: A Deferred that will complete when the connection is
        gone.
        """


class IServiceContextFactory(Interface):
    def getContext(environment):
        """
        Start, administer or shut down a directory service.

        @param environment: a mapping of string keys to string values,
        see ldapfixture.serviceconfig.

        @return: A Deferred IAdminContext, or a Deferred None for a
        shutdown request.
        """
