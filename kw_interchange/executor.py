"""Run query, archive, reindex and export batches against a repository."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from tqdm import tqdm

from .catalog import KeywordSchemaCatalog
from .coercion import coerce, coerce_keywords, convert
from .errors import (
    ConfigurationError,
    InterchangeError,
    NotFoundError,
    StoreError,
)
from .reader import BATCH_FILENAMES, read_batch_file
from .repository import DocumentRepository, locked_document
from .schemas import (
    BatchResult,
    ContentDescriptor,
    DocumentTypeGroupSchema,
    ItemResult,
    ItemStatus,
    KeywordDataType,
    KeywordModification,
    OperationType,
    StoreRequest,
)

logger = logging.getLogger(__name__)


ARCHIVE_COMMENT = "Keyword Interchange batch import"
DISPLAY_COLUMNS = ("DocumentDate",)

T = TypeVar("T")


def _timestamp() -> str:
    """Current UTC time in ISO 8601."""
    return datetime.now(timezone.utc).isoformat()


def _describe_error(exc: BaseException) -> str:
    """Format an exception as ``ClassName: message``."""
    return f"{type(exc).__name__}: {exc}"


def _parse_document_id(descriptor: ContentDescriptor) -> int:
    """Parse ``documentID`` with the same strict rule as Numeric9 keywords."""
    return convert(descriptor.document_id or "", KeywordDataType.NUMERIC9, "documentID")[1]


def _source_path(batch_dir: Path, relative: str) -> Path:
    """
    Resolve an archive source file inside the batch directory.

    Raises:
        StoreError: If the path is absolute or resolves outside ``batch_dir``
    """
    if Path(relative).is_absolute():
        raise StoreError(f"source file must be relative to the batch directory: {relative}")
    root = batch_dir.resolve()
    source = (root / relative).resolve()
    if source != root and root not in source.parents:
        raise StoreError(f"source file escapes the batch directory: {relative}")
    return source


class BatchExecutor:
    """
    Drives one batch operation at a time over a sequence of descriptors.

    Descriptors run strictly in file order. A failure inside one descriptor
    is recorded on its ``ItemResult`` and the next descriptor still runs;
    only run-level failures (missing batch file, unresolved shared group)
    escape.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        batch_dir: str,
        catalog: Optional[KeywordSchemaCatalog] = None,
        document_type_group: Optional[str] = None,
        download_dir: Optional[str] = None,
        show_progress: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.catalog = catalog or KeywordSchemaCatalog(repository)
        self.batch_dir = Path(batch_dir)
        self.document_type_group = document_type_group
        self.download_dir = Path(download_dir) if download_dir else self.batch_dir / "downloads"
        self.show_progress = show_progress
        self.clock = clock
        self.last_query_ids: List[int] = []

    # ------------------------------------------------------------------
    # Entry points

    def run(self, operation: OperationType) -> BatchResult:
        """
        Read the batch file for ``operation`` from the batch directory and run it.

        Raises:
            MalformedBatchError: If the batch file is missing or malformed
        """
        operation = OperationType(operation)
        if operation == OperationType.EXPORT:
            return self.export()
        path = self.batch_dir / BATCH_FILENAMES[operation]
        descriptors = read_batch_file(path, operation)
        logger.info("Batch file found: %s (%d entries)", path, len(descriptors))
        if operation == OperationType.QUERY:
            return self.query(descriptors)
        if operation == OperationType.ARCHIVE:
            return self.archive(descriptors)
        return self.reindex(descriptors)

    def query(self, descriptors: Sequence[ContentDescriptor]) -> BatchResult:
        """Query documents matching each descriptor's type and keywords."""
        logger.info("Attempting to execute document queries...")
        result = self._fold(OperationType.QUERY, descriptors, self._query_one, _descriptor_label)
        self.last_query_ids = list(result.document_ids)
        return result

    def archive(
        self,
        descriptors: Sequence[ContentDescriptor],
        group_name: Optional[str] = None,
    ) -> BatchResult:
        """
        Store each descriptor's source file as a new document.

        The document type group is resolved once for the whole batch; if it
        cannot be resolved nothing is stored.

        Raises:
            ConfigurationError: If no group name is configured or given
            NotFoundError: If the shared group does not exist
        """
        logger.info("Attempting to archive documents...")
        group_name = group_name or self.document_type_group
        if group_name is None:
            group_name = next(
                (d.document_type_group for d in descriptors if d.document_type_group),
                None,
            )
        if group_name is None:
            raise ConfigurationError("archive requires a document type group")

        group = self.catalog.resolve_group(group_name)
        logger.info("Document type group found: %s", group.name)

        def handler(index: int, descriptor: ContentDescriptor) -> ItemResult:
            return self._archive_one(index, descriptor, group)

        return self._fold(OperationType.ARCHIVE, descriptors, handler, _descriptor_label)

    def reindex(self, descriptors: Sequence[ContentDescriptor]) -> BatchResult:
        """Replace keyword values on existing documents."""
        logger.info("Attempting to re-index documents by updating keywords...")
        return self._fold(OperationType.REINDEX, descriptors, self._reindex_one, _descriptor_label)

    def export(self, document_ids: Optional[Iterable[int]] = None) -> BatchResult:
        """
        Download the content of each document to the download directory.

        Defaults to the document ids returned by the last query run.
        """
        logger.info("Attempting to get document data...")
        ids = list(self.last_query_ids if document_ids is None else document_ids)
        self.download_dir.mkdir(parents=True, exist_ok=True)
        return self._fold(OperationType.EXPORT, ids, self._export_one, lambda document_id: str(document_id))

    def write_result(self, result: BatchResult, out_dir: Optional[str] = None) -> Path:
        """Write ``<operation>_result.json`` describing every descriptor outcome."""
        target_dir = Path(out_dir) if out_dir else self.batch_dir
        os.makedirs(target_dir, exist_ok=True)
        path = target_dir / f"{result.operation.value}_result.json"
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(result.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
        return path

    # ------------------------------------------------------------------
    # Fold

    def _fold(
        self,
        operation: OperationType,
        items: Sequence[T],
        handler: Callable[[int, T], ItemResult],
        label: Callable[[T], str],
    ) -> BatchResult:
        result = BatchResult(operation=operation, started_at=_timestamp())
        progress = tqdm(
            items,
            desc=f"{operation.value.capitalize()} batch",
            disable=not self.show_progress,
        )

        for index, item in enumerate(progress):
            progress.set_postfix_str(label(item))
            try:
                item_result = handler(index, item)
            except InterchangeError as exc:
                logger.warning("[%d] %s failed: %s", index, operation.value, exc)
                item_result = ItemResult(
                    descriptor_index=index,
                    status=ItemStatus.FAILED,
                    error=_describe_error(exc),
                )
            except Exception as exc:
                logger.exception("[%d] %s failed unexpectedly", index, operation.value)
                item_result = ItemResult(
                    descriptor_index=index,
                    status=ItemStatus.FAILED,
                    error=_describe_error(exc),
                )

            result.record(item_result)
            if item_result.status == ItemStatus.SUCCESS:
                result.document_ids.extend(item_result.matched_document_ids)
                if item_result.resulting_document_id is not None:
                    result.document_ids.append(item_result.resulting_document_id)

        result.finished_at = _timestamp()
        logger.info(
            "%s summary: success=%d, failed=%d, skipped=%d",
            operation.value.capitalize(),
            result.succeeded,
            result.failed,
            result.skipped,
        )
        return result

    # ------------------------------------------------------------------
    # Per-descriptor steps

    def _query_one(self, index: int, descriptor: ContentDescriptor) -> ItemResult:
        document_type = self.catalog.resolve_document_type(
            descriptor.document_type, descriptor.document_type_group
        )
        filters = coerce_keywords(descriptor.keywords, document_type.keyword_schema)
        hits = self.repository.execute_query(document_type, DISPLAY_COLUMNS, filters)

        logger.info("[%d] Documents returned: %d", index, len(hits))
        for hit in hits:
            logger.info(
                "Document ID %s (%d display column(s): %s)",
                hit.document_id,
                len(hit.display_values),
                ", ".join(f"{name}={value}" for name, value in hit.display_values.items()) or "-",
            )

        return ItemResult(
            descriptor_index=index,
            status=ItemStatus.SUCCESS,
            matched_document_ids=[hit.document_id for hit in hits],
        )

    def _archive_one(
        self,
        index: int,
        descriptor: ContentDescriptor,
        group: DocumentTypeGroupSchema,
    ) -> ItemResult:
        if descriptor.document_type_group and descriptor.document_type_group != group.name:
            raise StoreError(
                f"entry targets group {descriptor.document_type_group}, batch group is {group.name}"
            )
        if not descriptor.file or not descriptor.file_types:
            raise StoreError("archive entry needs a file and a file type")

        document_type = self.catalog.resolve_document_type(descriptor.document_type, group.name)
        file_type = self.catalog.resolve_file_type(descriptor.file_types[0])

        source = _source_path(self.batch_dir, descriptor.file)
        if not source.is_file():
            logger.info("[%d] Archive document file not found: %s", index, source)
            return ItemResult(
                descriptor_index=index,
                status=ItemStatus.SKIPPED,
                message=f"source file not found: {descriptor.file}",
            )
        logger.info("[%d] Archive document found: %s", index, source)

        request = StoreRequest(
            file_paths=[str(source)],
            document_type=document_type,
            file_type=file_type,
            keywords=coerce_keywords(descriptor.keywords, document_type.keyword_schema),
            document_date=self.clock(),
            comment=ARCHIVE_COMMENT,
            skip_workflow=True,
        )
        new_id = self.repository.store_new_document(request)
        logger.info("[%d] Document import was successful. New Document ID: %s", index, new_id)
        return ItemResult(
            descriptor_index=index,
            status=ItemStatus.SUCCESS,
            resulting_document_id=new_id,
        )

    def _reindex_one(self, index: int, descriptor: ContentDescriptor) -> ItemResult:
        document_id = _parse_document_id(descriptor)
        document = self.repository.get_document_by_id(document_id, load_keywords=True)
        if document is None:
            raise NotFoundError("document", str(document_id))

        eligible = [
            keyword
            for keyword in document.keywords
            if keyword.keyword_type.name in descriptor.keywords
        ]
        if not eligible:
            logger.info("[%d] No matching keywords on document %s", index, document_id)

        with locked_document(self.repository, document):
            modifications = [
                KeywordModification(
                    existing=keyword,
                    replacement=coerce(descriptor.keywords[keyword.keyword_type.name], keyword.keyword_type),
                )
                for keyword in eligible
            ]
            self.repository.apply_keyword_modifications(document, modifications)

        logger.info("[%d] Keywords successfully updated. Document ID: %s", index, document_id)
        return ItemResult(
            descriptor_index=index,
            status=ItemStatus.SUCCESS,
            resulting_document_id=document_id,
            message=f"updated {len(modifications)} keyword(s)",
        )

    def _export_one(self, index: int, document_id: int) -> ItemResult:
        document = self.repository.get_document_by_id(document_id)
        if document is None:
            raise NotFoundError("document", str(document_id))

        with locked_document(self.repository, document):
            content, extension = self.repository.get_document_content(document)
            path = self.download_dir / f"{document.id}.{extension}"
            with open(path, "wb") as handle:
                handle.write(content)

        logger.info("[%d] Document ID %s export was successful: %s", index, document_id, path)
        return ItemResult(
            descriptor_index=index,
            status=ItemStatus.SUCCESS,
            resulting_document_id=document_id,
            message=str(path),
        )


def _descriptor_label(descriptor: ContentDescriptor) -> str:
    return descriptor.document_id or descriptor.file or descriptor.document_type
