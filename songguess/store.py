"""Magasin de documents: interface commune et implémentation en mémoire.

Les chemins suivent la convention Firestore (`collection/doc/collection/doc`).
Les écritures acceptent la sentinelle `SERVER_TIMESTAMP`, résolue par le
magasin au moment de l'écriture. Les abonnements livrent immédiatement la
valeur courante puis chaque modification.
"""

from __future__ import annotations

import copy
import inspect
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass
class Document:
    id: str
    data: Dict[str, Any]


Filter = Tuple[str, Any]
DocumentListener = Callable[[Optional[Document]], Union[None, Awaitable[None]]]
CollectionListener = Callable[[List[Document]], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], None]


def parent_path(path: str) -> str:
    return path.rsplit("/", 1)[0]


def document_id(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def sort_documents(
    documents: List[Document], order_by: Optional[str], descending: bool = False
) -> List[Document]:
    if not order_by:
        return documents
    # Les documents sans champ de tri passent en dernier (ordre croissant)
    return sorted(
        documents,
        key=lambda d: (d.data.get(order_by) is None, d.data.get(order_by)),
        reverse=descending,
    )


class DocumentStore:
    """Interface asynchrone du magasin de documents."""

    async def get_document(self, path: str) -> Optional[Document]:
        raise NotImplementedError

    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        raise NotImplementedError

    async def add_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def delete_document(self, path: str) -> None:
        raise NotImplementedError

    async def query_collection(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        raise NotImplementedError

    async def subscribe(self, path: str, listener: DocumentListener) -> Unsubscribe:
        raise NotImplementedError

    async def subscribe_collection(
        self,
        path: str,
        listener: CollectionListener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        raise NotImplementedError


async def _call(listener: Callable[[Any], Any], payload: Any) -> None:
    result = listener(payload)
    if inspect.isawaitable(result):
        await result


class MemoryStore(DocumentStore):
    """Magasin en mémoire d'un seul processus, avec diffusion aux abonnés."""

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._document_listeners: Dict[str, List[DocumentListener]] = {}
        self._collection_listeners: Dict[str, List[Tuple[CollectionListener, Optional[str], bool]]] = {}
        self._last_timestamp: Optional[datetime] = None

    def _now(self) -> datetime:
        now = datetime.now(timezone.utc)
        # horodatages strictement croissants
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, data: Dict[str, Any]) -> Dict[str, Any]:
        resolved = copy.deepcopy({k: v for k, v in data.items() if v is not SERVER_TIMESTAMP})
        stamp = None
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                stamp = stamp or self._now()
                resolved[key] = stamp
        return resolved

    def _snapshot(self, path: str) -> Optional[Document]:
        data = self._documents.get(path)
        if data is None:
            return None
        return Document(id=document_id(path), data=copy.deepcopy(data))

    def _collection(self, path: str) -> List[Document]:
        return [
            Document(id=document_id(doc_path), data=copy.deepcopy(data))
            for doc_path, data in self._documents.items()
            if parent_path(doc_path) == path
        ]

    async def _notify(self, path: str) -> None:
        snapshot = self._snapshot(path)
        for listener in list(self._document_listeners.get(path, [])):
            await _call(listener, snapshot)
        collection = parent_path(path)
        for listener, order_by, descending in list(self._collection_listeners.get(collection, [])):
            await _call(listener, sort_documents(self._collection(collection), order_by, descending))

    async def get_document(self, path: str) -> Optional[Document]:
        return self._snapshot(path)

    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        resolved = self._resolve(data)
        if merge and path in self._documents:
            self._documents[path].update(resolved)
        else:
            self._documents[path] = resolved
        await self._notify(path)

    async def add_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        await self.set_document(f"{collection_path}/{doc_id}", data)
        return doc_id

    async def delete_document(self, path: str) -> None:
        if self._documents.pop(path, None) is not None:
            await self._notify(path)

    async def query_collection(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        documents = [
            d for d in self._collection(path) if all(d.data.get(f) == v for f, v in filters)
        ]
        documents = sort_documents(documents, order_by, descending)
        return documents[:limit] if limit is not None else documents

    async def subscribe(self, path: str, listener: DocumentListener) -> Unsubscribe:
        self._document_listeners.setdefault(path, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._document_listeners.get(path, [])
            if listener in listeners:
                listeners.remove(listener)

        await _call(listener, self._snapshot(path))
        return unsubscribe

    async def subscribe_collection(
        self,
        path: str,
        listener: CollectionListener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        entry = (listener, order_by, descending)
        self._collection_listeners.setdefault(path, []).append(entry)

        def unsubscribe() -> None:
            entries = self._collection_listeners.get(path, [])
            if entry in entries:
                entries.remove(entry)

        await _call(listener, sort_documents(self._collection(path), order_by, descending))
        return unsubscribe


def build_store(settings: Any) -> DocumentStore:
    """Instancie le magasin choisi par `STORE_BACKEND` (`memory` ou `firestore`)."""
    if settings.store_backend == "firestore":
        from .firestore_store import FirestoreStore

        return FirestoreStore.from_settings(settings)
    if settings.store_backend != "memory":
        logger.warning("Unknown store backend %r, falling back to memory", settings.store_backend)
    return MemoryStore()
