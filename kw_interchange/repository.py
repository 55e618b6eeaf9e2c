"""Abstract interface to the external document repository."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import LockError
from .schemas import (
    DocumentHandle,
    DocumentLock,
    DocumentTypeGroupSchema,
    DocumentTypeSchema,
    FileTypeHandle,
    KeywordModification,
    QueryHit,
    StoreRequest,
    TypedKeywordValue,
)

logger = logging.getLogger(__name__)


class DocumentRepository(ABC):
    """
    Operations the batch executor needs from a document repository.

    Lookups return ``None`` when nothing matches; callers decide whether that
    is fatal. Every call blocks until the repository answers.
    """

    @abstractmethod
    def list_document_type_groups(self) -> List[DocumentTypeGroupSchema]:
        """All document type groups, in repository order."""

    @abstractmethod
    def find_document_type_group(self, name: str) -> Optional[DocumentTypeGroupSchema]:
        """Look up a document type group by name."""

    @abstractmethod
    def find_document_type(
        self, name: str, group: Optional[DocumentTypeGroupSchema] = None
    ) -> Optional[DocumentTypeSchema]:
        """Look up a document type, inside ``group`` when one is given."""

    @abstractmethod
    def find_file_type(self, name: str) -> Optional[FileTypeHandle]:
        """Look up a file type by name."""

    @abstractmethod
    def execute_query(
        self,
        document_type: DocumentTypeSchema,
        display_columns: Sequence[str],
        keyword_filters: Sequence[TypedKeywordValue],
    ) -> List[QueryHit]:
        """Run an unbounded query for documents of one type."""

    @abstractmethod
    def get_document_by_id(
        self, document_id: int, load_keywords: bool = False
    ) -> Optional[DocumentHandle]:
        """Fetch a document, optionally with its keywords loaded."""

    @abstractmethod
    def lock_document(self, document: DocumentHandle) -> DocumentLock:
        """Request an exclusive lock; inspect ``obtained`` on the result."""

    @abstractmethod
    def release_lock(self, lock: DocumentLock) -> None:
        """Release a lock handle returned by ``lock_document``."""

    @abstractmethod
    def store_new_document(self, request: StoreRequest) -> int:
        """Store a new document and return its identifier."""

    @abstractmethod
    def apply_keyword_modifications(
        self,
        document: DocumentHandle,
        modifications: Sequence[KeywordModification],
    ) -> None:
        """Apply all keyword replacements in one commit."""

    @abstractmethod
    def get_document_content(self, document: DocumentHandle) -> Tuple[bytes, str]:
        """Return the default rendition as (content, file extension)."""


@contextmanager
def locked_document(repository: DocumentRepository, document: DocumentHandle) -> Iterator[DocumentLock]:
    """
    Hold an exclusive lock on ``document`` for the body of a ``with`` block.

    The handle is released exactly once on every exit path, including when
    the lock was refused.

    Raises:
        LockError: If the repository does not grant the lock
    """
    lock = repository.lock_document(document)
    try:
        if not lock.obtained:
            raise LockError(document.id)
        logger.debug("Locked document %s", document.id)
        yield lock
    finally:
        repository.release_lock(lock)
        logger.debug("Released lock on document %s", document.id)
