"""In-memory document store: deterministic store for tests and development.

Every operation yields to the event loop (optionally after a simulated
latency) before its atomic section, so concurrent coroutines interleave the
way they would against a remote store. The push channel can be suspended to
simulate dropped change notifications.
"""

import asyncio
import copy
from collections import defaultdict

import structlog

from tracking.store.port import (
    RESERVED_FIELDS,
    ChangeEvent,
    DocumentNotFound,
    DocumentStore,
    DuplicateDocument,
    PreconditionFailed,
    Subscription,
)

logger = structlog.get_logger(__name__)

_CLOSED = object()


class _MemorySubscription(Subscription):
    def __init__(self, store: "InMemoryDocumentStore", collection: str, doc_id: str, maxsize: int):
        self._store = store
        self.collection = collection
        self.doc_id = doc_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, item) -> None:
        # Bounded: the oldest undelivered change is dropped first
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    async def __anext__(self) -> ChangeEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store._unsubscribe(self)
        self._offer(_CLOSED)


class InMemoryDocumentStore(DocumentStore):
    """Document store that keeps collections in process memory."""

    def __init__(self, latency: float = 0.0, subscription_buffer: int = 100):
        self.latency = latency
        self.subscription_buffer = subscription_buffer
        self.push_enabled = True
        self._collections: dict[str, dict[str, dict]] = defaultdict(dict)
        self._subscriptions: dict[tuple[str, str], list[_MemorySubscription]] = defaultdict(list)
        self.operations: list[tuple[str, str, str]] = []

    # -------------------------------------------------------------------
    # Test controls
    # -------------------------------------------------------------------
    def suspend_push(self) -> None:
        """Stop delivering change events; writes made meanwhile are never pushed."""
        self.push_enabled = False

    def resume_push(self) -> None:
        self.push_enabled = True

    def subscriber_count(self, collection: str | None = None, doc_id: str | None = None) -> int:
        return sum(
            len(subs)
            for (coll, did), subs in self._subscriptions.items()
            if (collection is None or coll == collection) and (doc_id is None or did == doc_id)
        )

    def reset(self) -> None:
        self._collections.clear()
        for subs in list(self._subscriptions.values()):
            for sub in list(subs):
                sub.close()
        self._subscriptions.clear()
        self.operations.clear()
        self.push_enabled = True

    # -------------------------------------------------------------------
    # DocumentStore
    # -------------------------------------------------------------------
    async def get(self, collection: str, doc_id: str) -> dict | None:
        await self._pause()
        self.operations.append(("get", collection, doc_id))
        document = self._collections[collection].get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def insert(self, collection: str, doc_id: str, document: dict) -> dict:
        await self._pause()
        self.operations.append(("insert", collection, doc_id))
        if doc_id in self._collections[collection]:
            raise DuplicateDocument(collection, doc_id)
        stored = {k: copy.deepcopy(v) for k, v in document.items() if k not in RESERVED_FIELDS}
        stored["id"] = doc_id
        stored["revision"] = 1
        self._collections[collection][doc_id] = stored
        self._publish(collection, doc_id, stored)
        return copy.deepcopy(stored)

    async def patch(
        self,
        collection: str,
        doc_id: str,
        fields: dict,
        expected: dict | None = None,
    ) -> dict:
        await self._pause()
        self.operations.append(("patch", collection, doc_id))
        stored = self._collections[collection].get(doc_id)
        if stored is None:
            raise DocumentNotFound(collection, doc_id)

        if expected:
            actual = {key: stored.get(key) for key in expected}
            if actual != expected:
                raise PreconditionFailed(collection, doc_id, dict(expected), actual)

        for key, value in fields.items():
            if key in RESERVED_FIELDS:
                raise ValueError(f"Field '{key}' is managed by the store")
            stored[key] = copy.deepcopy(value)
        stored["revision"] += 1
        self._publish(collection, doc_id, stored)
        return copy.deepcopy(stored)

    async def query(self, collection: str, field: str, value) -> list[dict]:
        await self._pause()
        self.operations.append(("query", collection, field))
        return [copy.deepcopy(doc) for doc in self._collections[collection].values() if doc.get(field) == value]

    async def increment(self, collection: str, doc_id: str, field: str, amount: int = 1) -> int:
        await self._pause()
        self.operations.append(("increment", collection, doc_id))
        stored = self._collections[collection].setdefault(doc_id, {"id": doc_id, "revision": 0})
        stored[field] = (stored.get(field) or 0) + amount
        stored["revision"] += 1
        self._publish(collection, doc_id, stored)
        return stored[field]

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._pause()
        self.operations.append(("delete", collection, doc_id))
        self._collections[collection].pop(doc_id, None)

    def subscribe(self, collection: str, doc_id: str) -> Subscription:
        subscription = _MemorySubscription(self, collection, doc_id, self.subscription_buffer)
        self._subscriptions[(collection, doc_id)].append(subscription)
        return subscription

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    async def _pause(self) -> None:
        await asyncio.sleep(self.latency)

    def _unsubscribe(self, subscription: _MemorySubscription) -> None:
        key = (subscription.collection, subscription.doc_id)
        subs = self._subscriptions.get(key)
        if subs and subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscriptions.pop(key, None)

    def _publish(self, collection: str, doc_id: str, stored: dict) -> None:
        if not self.push_enabled:
            logger.debug("Push suspended, change not delivered", collection=collection, doc_id=doc_id)
            return
        for subscription in list(self._subscriptions.get((collection, doc_id), [])):
            subscription._offer(
                ChangeEvent(
                    collection=collection,
                    doc_id=doc_id,
                    revision=stored["revision"],
                    document=copy.deepcopy(stored),
                )
            )
