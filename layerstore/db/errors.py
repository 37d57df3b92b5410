"""Storage-layer errors surfaced to callers on synchronous paths."""


class StorageError(RuntimeError):
    """A read or write against the relational store failed.

    Always raised from the underlying SQLAlchemy error so the original
    cause stays on ``__cause__``.
    """
