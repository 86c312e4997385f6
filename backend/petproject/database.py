"""
PetProject Backend - Document Store Lifecycle
===============================================

What:  Builds the process-wide document store, exposes it as a FastAPI
       dependency, and closes it on shutdown. Also owns the firebase-admin
       app shared by the Firestore store and the Firebase blob store.
How:   The backend is chosen by settings.document_store_backend. The store is
       created lazily on first use and cached for the process lifetime.
Who:   Route handlers via Depends(get_document_store); main.lifespan for
       startup/shutdown; services.blob_service for the storage bucket.
When:  First request (or first explicit call); closed at shutdown.

Firebase credentials:
    FIREBASE_CREDENTIALS_FILE points at a service-account JSON file. When it is
    empty, firebase-admin's Application Default Credentials are used (the
    usual setup on Cloud Run / GKE).
"""

import logging
from typing import Optional

from petproject.config import settings
from petproject.store.base import DocumentStore
from petproject.store.memory import MemoryDocumentStore

logger = logging.getLogger(__name__)


# ── Firebase App ──────────────────────────────────────────────────────────
_firebase_app = None


def get_firebase_app():
    """
    Lazily initialise the firebase-admin app.

    Reuses an already-initialised default app (for example one created by a
    hosting wrapper) instead of initialising a second one.
    """
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app

    import firebase_admin
    from firebase_admin import credentials

    if firebase_admin._apps:
        _firebase_app = firebase_admin.get_app()
        return _firebase_app

    if settings.firebase_credentials_file:
        cred = credentials.Certificate(settings.firebase_credentials_file)
    else:
        cred = credentials.ApplicationDefault()

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        options["storageBucket"] = settings.firebase_storage_bucket

    _firebase_app = firebase_admin.initialize_app(cred, options or None)
    logger.info(
        "Firebase app initialised (project=%s)",
        settings.firebase_project_id or "<default>",
    )
    return _firebase_app


# ── Document Store ────────────────────────────────────────────────────────
_store: Optional[DocumentStore] = None


def create_document_store(backend: Optional[str] = None) -> DocumentStore:
    """Build a new store for `backend` (defaults to the configured one)."""
    backend = backend or settings.document_store_backend

    if backend == "memory":
        logger.info("Using in-memory document store")
        return MemoryDocumentStore()

    if backend == "firestore":
        from firebase_admin import firestore_async

        from petproject.store.firestore import FirestoreDocumentStore

        client = firestore_async.client(get_firebase_app())
        logger.info("Using Cloud Firestore document store")
        return FirestoreDocumentStore(client)

    raise ValueError(f"Unknown document store backend '{backend}'")


def get_document_store() -> DocumentStore:
    """
    FastAPI dependency returning the process-wide document store.

    Example usage in a route:
        @router.get("/posts")
        async def list_posts(store: DocumentStore = Depends(get_document_store)):
            return await feed_service.list_posts(store)

    Tests replace it with app.dependency_overrides[get_document_store].
    """
    global _store
    if _store is None:
        _store = create_document_store()
    return _store


async def close_document_store() -> None:
    """Close and forget the cached store. Called from the lifespan shutdown."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
