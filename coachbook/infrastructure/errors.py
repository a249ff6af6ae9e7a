"""Errors raised by the storage adapters."""


class StorageError(Exception):
    """Raised when a storage operation fails or storage cannot be reached."""
    pass
