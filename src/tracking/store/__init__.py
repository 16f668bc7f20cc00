"""Document store adapter registry: pluggable shared-record storage."""

import os

_store_instance = None


def get_store():
    """Return the configured document store adapter (singleton).

    Uses the in-memory store by default. Configure via the
    DOCUMENT_STORE_ADAPTER environment variable.
    """
    global _store_instance
    if _store_instance is None:
        adapter = os.environ.get("DOCUMENT_STORE_ADAPTER", "memory")
        if adapter == "memory":
            from tracking.store.memory import InMemoryDocumentStore

            _store_instance = InMemoryDocumentStore()
        else:
            raise ValueError(f"Unknown document store adapter: {adapter}")
    return _store_instance


def reset_store():
    """Reset the store singleton (useful for testing)."""
    global _store_instance
    _store_instance = None
