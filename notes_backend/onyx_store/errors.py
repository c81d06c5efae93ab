class StartupError(RuntimeError):
    """The store could not be made ready; the backend cannot serve any note operation."""


class StorageError(Exception):
    """A note operation failed in the database (constraint violation, I/O, locked store)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
