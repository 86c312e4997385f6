"""
PetProject Backend - Abstract Blob Store Interface
====================================================

What:  Contract for storing and deleting media (post photos and videos,
       question images, scanned medical documents).
How:   Concrete stores inherit from BlobStore. Documents only ever hold the
       URL returned by upload(); delete() takes that same URL back.
Who:   FeedService, QAService and the scan route, through the
       `blob_service` singleton.
"""

from abc import ABC, abstractmethod


class BlobStore(ABC):
    """
    Abstract media store.

    Contract:
        - upload() writes `content` at `path` and returns a URL that can be
          stored in a document and fetched by clients.
        - delete() removes the object behind a URL previously returned by
          upload(). Deleting something already gone is not an error.
        - Failures are raised as BlobStorageError.

    Implementations:
        - LocalBlobStore: files under settings.storage_root (aiofiles)
        - FirebaseBlobStore: Firebase Storage bucket (firebase-admin)
    """

    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        ...

    @abstractmethod
    async def delete(self, url: str) -> None:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...
