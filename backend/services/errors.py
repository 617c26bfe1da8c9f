"""Exception types raised by the search services."""


class SearchCoreError(Exception):
    """Base class for errors raised by the search services."""


class ConfigurationError(SearchCoreError, ValueError):
    """Invalid chunking or index configuration, rejected at construction."""


class DimensionMismatchError(SearchCoreError, ValueError):
    """A vector's length differs from the index dimension."""

    def __init__(self, expected: int, actual: int, item_id: str = None):
        self.expected = expected
        self.actual = actual
        self.item_id = item_id
        target = f" for {item_id}" if item_id else ""
        super().__init__(
            f"Vector dimension mismatch{target}: expected {expected}, got {actual}"
        )


class CorpusError(SearchCoreError):
    """A corpus snapshot could not be read or parsed."""


class EmbeddingError(SearchCoreError, RuntimeError):
    """The embedding model failed to produce a vector."""


class SearchUnavailableError(SearchCoreError):
    """Search cannot be served right now (e.g. the query could not be embedded)."""
