"""Document store port: abstract interface for the shared record store.

Models a managed document database (Firestore-like): read/patch by id,
query by field, atomic counters and a per-document change subscription.
Every write bumps a store-owned ``revision`` on the document so readers
can order snapshots of the same record.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

ORDERS = "orders"
COUNTERS = "counters"

RESERVED_FIELDS = ("id", "revision")


class StoreError(Exception):
    """The document store could not complete an operation."""


class DocumentNotFound(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


class DuplicateDocument(StoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} already exists")
        self.collection = collection
        self.doc_id = doc_id


class PreconditionFailed(StoreError):
    """A compare-and-set patch found different values than expected.

    ``actual`` holds the current values of the compared fields.
    """

    def __init__(self, collection: str, doc_id: str, expected: dict, actual: dict):
        super().__init__(f"{collection}/{doc_id} precondition failed: expected {expected}, found {actual}")
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class ChangeEvent:
    """A pushed update: the full document as of ``revision``."""

    collection: str
    doc_id: str
    revision: int
    document: dict


class Subscription(ABC):
    """Async iterator of ChangeEvents for one document. Must be closed."""

    def __aiter__(self):
        return self

    @abstractmethod
    async def __anext__(self) -> ChangeEvent: ...

    @abstractmethod
    def close(self) -> None:
        """Release the subscription. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool: ...


class DocumentStore(ABC):
    """Abstract interface for document store adapters."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict | None:
        """Return a copy of the document (including ``id`` and ``revision``) or None."""
        ...

    @abstractmethod
    async def insert(self, collection: str, doc_id: str, document: dict) -> dict:
        """Create a document. Raises DuplicateDocument if the id is taken."""
        ...

    @abstractmethod
    async def patch(
        self,
        collection: str,
        doc_id: str,
        fields: dict,
        expected: dict | None = None,
    ) -> dict:
        """Merge ``fields`` into the document and return the result.

        When ``expected`` is given the write happens only if every listed field
        currently holds the expected value; otherwise PreconditionFailed.
        Fields not named in ``fields`` are left untouched.
        """
        ...

    @abstractmethod
    async def query(self, collection: str, field: str, value) -> list[dict]:
        """Return every document whose ``field`` equals ``value``."""
        ...

    @abstractmethod
    async def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to a numeric field and return the new value."""
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None: ...

    @abstractmethod
    def subscribe(self, collection: str, doc_id: str) -> Subscription:
        """Open a change subscription for one document."""
        ...
