class RegistryError(RuntimeError):
    """Base class for errors raised by the service registry."""


class ValidationError(RegistryError):
    """A required field (id, name or url) is missing or empty."""


class NotFoundError(RegistryError):
    """No service with the given id exists."""


class StorageError(RegistryError):
    """The services document could not be read or written."""
