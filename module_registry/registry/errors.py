"""
Registry errors.

NotFound and InternalError are the only outcomes a client ever sees.
StoreAccessError is raised by the store layer and becomes an InternalError
at the protocol boundary.
"""


class RegistryError(Exception):
    """Base class for registry failures."""


class NotFound(RegistryError):
    """The requested module, version or archive does not exist."""


class InternalError(RegistryError):
    """A server-side failure. The message is safe to show to clients."""


class StoreAccessError(RegistryError):
    """A git repository could not be opened or read."""
