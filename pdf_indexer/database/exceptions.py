class StoreError(Exception):
    """Base exception for all document store errors."""


class StoreWriteError(StoreError):
    """Raised when indexed content cannot be written."""
