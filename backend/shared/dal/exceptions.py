"""Errors raised by persistence implementations."""


class StorageError(Exception):
    """The backing store failed to read or write.

    Always raised before a write is considered committed, so the caller can
    retry the same operation without risk of a partial write.
    """
