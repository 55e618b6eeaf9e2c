"""Read-through cache of repository keyword schemas."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import NotFoundError
from .repository import DocumentRepository
from .schemas import DocumentTypeGroupSchema, DocumentTypeSchema, FileTypeHandle

logger = logging.getLogger(__name__)


CONFIG_FILENAME = "config.json"


class KeywordSchemaCatalog:
    """
    Resolves group, document type and file type names for one batch run.

    Schemas are treated as immutable while a process runs, so every
    successful lookup is cached. Misses are never cached and always raise.
    """

    def __init__(self, repository: DocumentRepository):
        self.repository = repository
        self._groups: Dict[str, DocumentTypeGroupSchema] = {}
        self._document_types: Dict[Tuple[Optional[str], str], DocumentTypeSchema] = {}
        self._file_types: Dict[str, FileTypeHandle] = {}

    def resolve_group(self, name: str) -> DocumentTypeGroupSchema:
        """Resolve a document type group by name."""
        group = self._groups.get(name)
        if group is None:
            logger.info("Resolving document type group: %s", name)
            group = self.repository.find_document_type_group(name)
            if group is None:
                raise NotFoundError("document type group", name)
            self._groups[name] = group
        return group

    def resolve_document_type(self, type_name: str, group_name: Optional[str] = None) -> DocumentTypeSchema:
        """
        Resolve a document type, scoped to a group when ``group_name`` is given.

        Raises:
            NotFoundError: If the group or the document type does not exist
        """
        key = (group_name, type_name)
        document_type = self._document_types.get(key)
        if document_type is not None:
            return document_type

        if group_name is not None:
            group = self.resolve_group(group_name)
            document_type = self.repository.find_document_type(type_name, group)
        else:
            document_type = self.repository.find_document_type(type_name)

        if document_type is None:
            label = f"{group_name}/{type_name}" if group_name else type_name
            raise NotFoundError("document type", label)

        self._document_types[key] = document_type
        return document_type

    def resolve_file_type(self, name: str) -> FileTypeHandle:
        """Resolve a file type by name."""
        file_type = self._file_types.get(name)
        if file_type is None:
            file_type = self.repository.find_file_type(name)
            if file_type is None:
                raise NotFoundError("file type", name)
            self._file_types[name] = file_type
        return file_type

    def describe(self, group_name: Optional[str] = None) -> List[DocumentTypeGroupSchema]:
        """All groups with their document types, or only ``group_name``."""
        if group_name is not None:
            return [self.resolve_group(group_name)]
        groups = self.repository.list_document_type_groups()
        for group in groups:
            self._groups.setdefault(group.name, group)
        return groups

    def export_config(self, out_dir: str, group_name: Optional[str] = None) -> Path:
        """
        Write the schema dump to ``<out_dir>/config.json``.

        Returns:
            Path of the written file
        """
        groups = self.describe(group_name)
        for group in groups:
            logger.info("Document type group: %s (ID: %s)", group.name, group.id)
            for document_type in group.document_types:
                logger.info(
                    "  Document type: %s (ID: %s) keywords=%s",
                    document_type.name,
                    document_type.id,
                    ", ".join(document_type.keyword_schema.names()) or "-",
                )

        payload = [_group_to_config(group) for group in groups]
        path = Path(out_dir) / CONFIG_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        logger.info("Wrote %d document type group(s) to %s", len(payload), path)
        return path


def _group_to_config(group: DocumentTypeGroupSchema) -> Dict[str, object]:
    return {
        "id": group.id,
        "name": group.name,
        "documentTypes": [
            {
                "id": document_type.id,
                "name": document_type.name,
                "keywordTypes": [
                    {
                        "id": keyword_type.id,
                        "name": keyword_type.name,
                        "dataType": keyword_type.data_type.value,
                        "required": keyword_type.required,
                    }
                    for keyword_type in document_type.keyword_schema.keyword_types
                ],
            }
            for document_type in group.document_types
        ],
    }
