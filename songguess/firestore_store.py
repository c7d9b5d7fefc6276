"""Magasin Firestore via le SDK `firebase_admin`.

Le client Firestore est synchrone: chaque appel tourne dans un thread de
travail et les instantanés des écouteurs sont ramenés sur la boucle asyncio.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from .errors import TransportError
from .store import (
    SERVER_TIMESTAMP,
    CollectionListener,
    Document,
    DocumentListener,
    DocumentStore,
    Filter,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


def initialize_client(settings: Any) -> Any:
    """Initialise Firebase Admin une seule fois par processus (JSON d'env ou fichier)."""
    if not firebase_admin._apps:
        if settings.firebase_credentials_json:
            logger.info("Initializing Firebase Admin from FIREBASE_SERVICE_ACCOUNT_JSON")
            cred = credentials.Certificate(json.loads(settings.firebase_credentials_json))
        else:
            logger.info("Initializing Firebase Admin from %s", settings.firebase_credentials_path)
            cred = credentials.Certificate(settings.firebase_credentials_path)
        firebase_admin.initialize_app(cred)
    return firestore.client()


def _translate(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (firestore.SERVER_TIMESTAMP if v is SERVER_TIMESTAMP else v) for k, v in data.items()}


class _Subscription:
    """File d'instantanés d'un écouteur, vidée dans l'ordre par une seule tâche."""

    def __init__(self, loop: asyncio.AbstractEventLoop, listener: Callable[[Any], Any]) -> None:
        self._loop = loop
        self._listener = listener
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._task = loop.create_task(self._consume())
        self._watch: Any = None

    def push(self, payload: Any) -> None:
        # appelé depuis le thread du SDK Firestore
        self._loop.call_soon_threadsafe(self._queue.put_nowait, payload)

    async def _consume(self) -> None:
        while True:
            payload = await self._queue.get()
            try:
                result = self._listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error("Snapshot listener failed", exc_info=True)

    def attach(self, watch: Any) -> None:
        self._watch = watch

    def unsubscribe(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None
        self._task.cancel()


class FirestoreStore(DocumentStore):
    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any) -> "FirestoreStore":
        return cls(initialize_client(settings))

    async def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except google_exceptions.GoogleAPIError as exc:
            logger.error("Firestore call failed: %s", exc)
            raise TransportError(f"Document store unavailable: {exc}") from exc

    async def get_document(self, path: str) -> Optional[Document]:
        snapshot = await self._run(self._client.document(path).get)
        if not snapshot.exists:
            return None
        return Document(id=snapshot.id, data=snapshot.to_dict() or {})

    async def set_document(self, path: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self._run(self._client.document(path).set, _translate(data), merge=merge)

    async def add_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        _, ref = await self._run(self._client.collection(collection_path).add, _translate(data))
        return ref.id

    async def delete_document(self, path: str) -> None:
        await self._run(self._client.document(path).delete)

    def _query(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> Any:
        query = self._client.collection(path)
        for field, value in filters:
            query = query.where(filter=firestore.FieldFilter(field, "==", value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return query

    async def query_collection(
        self,
        path: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        query = self._query(path, filters, order_by, descending, limit)

        def fetch() -> List[Document]:
            return [Document(id=s.id, data=s.to_dict() or {}) for s in query.stream()]

        return await self._run(fetch)

    def _listen(self, target: Any, subscription: _Subscription, on_snapshot: Callable[..., None]) -> Unsubscribe:
        try:
            subscription.attach(target.on_snapshot(on_snapshot))
        except google_exceptions.GoogleAPIError as exc:
            subscription.unsubscribe()
            logger.error("Firestore listener failed: %s", exc)
            raise TransportError(f"Document store unavailable: {exc}") from exc
        return subscription.unsubscribe

    async def subscribe(self, path: str, listener: DocumentListener) -> Unsubscribe:
        subscription = _Subscription(asyncio.get_running_loop(), listener)

        def on_snapshot(snapshots: List[Any], _changes: Any, _read_time: Any) -> None:
            # liste vide: document absent ou supprimé
            existing = [s for s in snapshots if s.exists]
            document = Document(id=existing[0].id, data=existing[0].to_dict() or {}) if existing else None
            subscription.push(document)

        return self._listen(self._client.document(path), subscription, on_snapshot)

    async def subscribe_collection(
        self,
        path: str,
        listener: CollectionListener,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Unsubscribe:
        subscription = _Subscription(asyncio.get_running_loop(), listener)

        def on_snapshot(snapshots: List[Any], _changes: Any, _read_time: Any) -> None:
            subscription.push([Document(id=s.id, data=s.to_dict() or {}) for s in snapshots])

        query = self._query(path, order_by=order_by, descending=descending)
        return self._listen(query, subscription, on_snapshot)
