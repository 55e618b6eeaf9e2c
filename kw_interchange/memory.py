"""In-memory document repository, seeded from code or a JSON snapshot."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .coercion import coerce
from .errors import ModifyError, NotFoundError, StoreError
from .repository import DocumentRepository
from .schemas import (
    DocumentHandle,
    DocumentLock,
    DocumentTypeGroupSchema,
    DocumentTypeSchema,
    ExistingKeyword,
    FileTypeHandle,
    KeywordModification,
    KeywordRecordSchema,
    KeywordType,
    QueryHit,
    StoreRequest,
    TypedKeywordValue,
)

logger = logging.getLogger(__name__)


@dataclass
class StoredDocument:
    """A document held by the in-memory repository."""
    id: int
    document_type: str
    keywords: List[ExistingKeyword]
    document_date: datetime
    content: bytes = b""
    extension: str = ""
    comment: str = ""
    skip_workflow: bool = False
    file_type: Optional[str] = None


@dataclass
class CallJournal:
    """Record of mutating calls, for inspection after a run."""
    lock_calls: int = 0
    release_calls: int = 0
    stores: List[StoreRequest] = field(default_factory=list)
    queries: List[Tuple[str, List[str], List[TypedKeywordValue]]] = field(default_factory=list)
    modifications: List[Tuple[int, List[KeywordModification]]] = field(default_factory=list)


class InMemoryRepository(DocumentRepository):
    """
    Repository adapter that keeps schemas, documents and locks in memory.

    Document types may carry several keyword record types; only the first
    one becomes the document type's schema, as with a live repository.
    """

    def __init__(self) -> None:
        self._groups: Dict[str, DocumentTypeGroupSchema] = {}
        self._file_types: Dict[str, FileTypeHandle] = {}
        self._documents: Dict[int, StoredDocument] = {}
        self._locks: Dict[int, str] = {}
        self._next_id = 1
        self.refused_locks: Set[int] = set()
        self.rejected_modifications: Set[int] = set()
        self.journal = CallJournal()

    # ------------------------------------------------------------------
    # Seeding

    def add_group(self, group_id: int, name: str) -> DocumentTypeGroupSchema:
        """Register an empty document type group."""
        group = DocumentTypeGroupSchema(id=group_id, name=name)
        self._groups[name] = group
        return group

    def add_document_type(
        self,
        group_name: str,
        type_id: int,
        name: str,
        keyword_record_types: Sequence[Sequence[KeywordType]] = (),
    ) -> DocumentTypeSchema:
        """Register a document type; the first record type is its schema."""
        group = self._groups.get(group_name)
        if group is None:
            raise NotFoundError("document type group", group_name)
        first = list(keyword_record_types[0]) if keyword_record_types else []
        document_type = DocumentTypeSchema(
            id=type_id,
            name=name,
            keyword_schema=KeywordRecordSchema(keyword_types=first),
            group_name=group_name,
        )
        types = [existing for existing in group.document_types if existing.name != name]
        types.append(document_type)
        self._groups[group_name] = DocumentTypeGroupSchema(
            id=group.id, name=group.name, document_types=types
        )
        return document_type

    def add_file_type(self, file_type_id: int, name: str) -> FileTypeHandle:
        """Register a file type by name."""
        file_type = FileTypeHandle(id=file_type_id, name=name)
        self._file_types[name] = file_type
        return file_type

    def add_document(
        self,
        document_type: str,
        keywords: Mapping[str, str],
        document_id: Optional[int] = None,
        content: bytes = b"",
        extension: str = "",
        document_date: Optional[datetime] = None,
    ) -> StoredDocument:
        """Add a document whose raw keyword strings are coerced by its schema."""
        schema = self.find_document_type(document_type)
        if schema is None:
            raise NotFoundError("document type", document_type)
        existing = [
            ExistingKeyword(keyword_type=value.keyword_type, value=value.value)
            for value in (
                coerce(keywords[keyword_type.name], keyword_type)
                for keyword_type in schema.keyword_schema.keyword_types
                if keyword_type.name in keywords
            )
        ]
        if document_id is None:
            document_id = self._next_id
        self._next_id = max(self._next_id, document_id + 1)
        stored = StoredDocument(
            id=document_id,
            document_type=document_type,
            keywords=existing,
            document_date=document_date or datetime.now(),
            content=content,
            extension=extension,
        )
        self._documents[document_id] = stored
        return stored

    @classmethod
    def from_snapshot(cls, path: str) -> "InMemoryRepository":
        """Build a repository from a JSON snapshot file."""
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InMemoryRepository":
        """
        Build a repository from snapshot data.

        The ``groups`` list uses the ``config.json`` layout; a document type
        may give ``keywordRecordTypes`` (list of keyword type lists) instead of
        ``keywordTypes``. ``fileTypes`` and ``documents`` are optional.
        """
        repository = cls()
        for group_data in data.get("groups", []):
            repository.add_group(group_data["id"], group_data["name"])
            for type_data in group_data.get("documentTypes", []):
                if "keywordRecordTypes" in type_data:
                    record_types = type_data["keywordRecordTypes"]
                else:
                    record_types = [type_data.get("keywordTypes", [])]
                repository.add_document_type(
                    group_data["name"],
                    type_data["id"],
                    type_data["name"],
                    [[KeywordType.model_validate(kt) for kt in record] for record in record_types],
                )
        for file_type_data in data.get("fileTypes", []):
            repository.add_file_type(file_type_data["id"], file_type_data["name"])
        for document_data in data.get("documents", []):
            repository.add_document(
                document_data["documentType"],
                document_data.get("keywords", {}),
                document_id=document_data.get("id"),
                content=document_data.get("content", "").encode("utf-8"),
                extension=document_data.get("extension", "txt"),
            )
        return repository

    # ------------------------------------------------------------------
    # Inspection

    def stored_document(self, document_id: int) -> Optional[StoredDocument]:
        """The stored record behind a document id, for inspection."""
        return self._documents.get(document_id)

    def is_locked(self, document_id: int) -> bool:
        """Whether a lock is currently held on the document."""
        return document_id in self._locks

    # ------------------------------------------------------------------
    # DocumentRepository

    def list_document_type_groups(self) -> List[DocumentTypeGroupSchema]:
        return list(self._groups.values())

    def find_document_type_group(self, name: str) -> Optional[DocumentTypeGroupSchema]:
        return self._groups.get(name)

    def find_document_type(
        self, name: str, group: Optional[DocumentTypeGroupSchema] = None
    ) -> Optional[DocumentTypeSchema]:
        if group is not None:
            current = self._groups.get(group.name)
            return current.find(name) if current is not None else None
        for candidate in self._groups.values():
            document_type = candidate.find(name)
            if document_type is not None:
                return document_type
        return None

    def find_file_type(self, name: str) -> Optional[FileTypeHandle]:
        return self._file_types.get(name)

    def execute_query(
        self,
        document_type: DocumentTypeSchema,
        display_columns: Sequence[str],
        keyword_filters: Sequence[TypedKeywordValue],
    ) -> List[QueryHit]:
        self.journal.queries.append((document_type.name, list(display_columns), list(keyword_filters)))
        hits: List[QueryHit] = []
        for document in self._documents.values():
            if document.document_type != document_type.name:
                continue
            if not all(_matches(document, keyword_filter) for keyword_filter in keyword_filters):
                continue
            display_values = {}
            for column in display_columns:
                if column == "DocumentDate":
                    display_values[column] = document.document_date.strftime("%m/%d/%Y")
            hits.append(
                QueryHit(
                    document_id=document.id,
                    display_values=display_values,
                    keyword_values=list(document.keywords),
                )
            )
        return hits

    def get_document_by_id(
        self, document_id: int, load_keywords: bool = False
    ) -> Optional[DocumentHandle]:
        document = self._documents.get(document_id)
        if document is None:
            return None
        return DocumentHandle(
            id=document.id,
            document_type=document.document_type,
            keywords=list(document.keywords) if load_keywords else [],
            keywords_loaded=load_keywords,
        )

    def lock_document(self, document: DocumentHandle) -> DocumentLock:
        self.journal.lock_calls += 1
        if document.id in self.refused_locks or document.id in self._locks:
            logger.debug("Lock refused for document %s", document.id)
            return DocumentLock(document_id=document.id, obtained=False)
        token = uuid.uuid4().hex
        self._locks[document.id] = token
        return DocumentLock(document_id=document.id, obtained=True, token=token)

    def release_lock(self, lock: DocumentLock) -> None:
        self.journal.release_calls += 1
        if lock.obtained and self._locks.get(lock.document_id) == lock.token:
            del self._locks[lock.document_id]

    def store_new_document(self, request: StoreRequest) -> int:
        self.journal.stores.append(request)
        if self.find_document_type(request.document_type.name) is None:
            raise StoreError(f"unknown document type: {request.document_type.name}")
        if request.file_type.name not in self._file_types:
            raise StoreError(f"unknown file type: {request.file_type.name}")

        supplied = {value.name for value in request.keywords}
        missing = [
            keyword_type.name
            for keyword_type in request.document_type.keyword_schema.keyword_types
            if keyword_type.required and keyword_type.name not in supplied
        ]
        if missing:
            raise StoreError(f"required keywords missing: {', '.join(missing)}")

        try:
            source = Path(request.file_paths[0])
            content = source.read_bytes()
        except (IndexError, OSError) as exc:
            raise StoreError(f"cannot read source file: {exc}") from exc

        stored = StoredDocument(
            id=self._next_id,
            document_type=request.document_type.name,
            keywords=[
                ExistingKeyword(keyword_type=value.keyword_type, value=value.value)
                for value in request.keywords
            ],
            document_date=request.document_date,
            content=content,
            extension=source.suffix.lstrip("."),
            comment=request.comment,
            skip_workflow=request.skip_workflow,
            file_type=request.file_type.name,
        )
        self._documents[stored.id] = stored
        self._next_id += 1
        return stored.id

    def apply_keyword_modifications(
        self,
        document: DocumentHandle,
        modifications: Sequence[KeywordModification],
    ) -> None:
        self.journal.modifications.append((document.id, list(modifications)))
        stored = self._documents.get(document.id)
        if stored is None:
            raise ModifyError(f"document {document.id} does not exist")
        if document.id not in self._locks:
            raise ModifyError(f"document {document.id} is not locked")
        if document.id in self.rejected_modifications:
            raise ModifyError(f"keyword modification rejected for document {document.id}")

        updated = list(stored.keywords)
        for modification in modifications:
            if modification.replacement.name != modification.existing.keyword_type.name:
                raise ModifyError(
                    f"cannot replace {modification.existing.keyword_type.name} "
                    f"with {modification.replacement.name}"
                )
            try:
                position = updated.index(modification.existing)
            except ValueError:
                raise ModifyError(
                    f"keyword {modification.existing.keyword_type.name} is not on document {document.id}"
                ) from None
            updated[position] = ExistingKeyword(
                keyword_type=modification.existing.keyword_type,
                value=modification.replacement.value,
            )
        # Commit only once every replacement validated.
        stored.keywords = updated

    def get_document_content(self, document: DocumentHandle) -> Tuple[bytes, str]:
        stored = self._documents.get(document.id)
        if stored is None:
            raise NotFoundError("document", str(document.id))
        return stored.content, stored.extension or "bin"


def _matches(document: StoredDocument, keyword_filter: TypedKeywordValue) -> bool:
    for keyword in document.keywords:
        if keyword.keyword_type.name == keyword_filter.name and keyword.value == keyword_filter.value:
            return True
    return False
