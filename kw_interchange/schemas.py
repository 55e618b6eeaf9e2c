"""Data schemas for keyword interchange."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator


class KeywordDataType(str, Enum):
    """Data types a repository keyword can declare."""
    ALPHANUMERIC = "AlphaNumeric"
    NUMERIC9 = "Numeric9"
    NUMERIC20 = "Numeric20"
    CURRENCY = "Currency"
    SPECIFIC_CURRENCY = "SpecificCurrency"
    FLOATING_POINT = "FloatingPoint"
    DATE = "Date"
    DATETIME = "DateTime"


class OperationType(str, Enum):
    """Batch operations, keyed by the batch file that drives them."""
    QUERY = "query"
    ARCHIVE = "archive"
    REINDEX = "reindex"
    EXPORT = "export"


class ItemStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class KeywordType(BaseModel):
    """A keyword definition read from the repository."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    data_type: KeywordDataType = Field(alias="dataType")
    required: bool = False


class KeywordRecordSchema(BaseModel):
    """Ordered keyword definitions of a document type, unique by name."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    keyword_types: List[KeywordType] = Field(default_factory=list, alias="keywordTypes")

    @field_validator("keyword_types")
    @classmethod
    def _unique_names(cls, value: List[KeywordType]) -> List[KeywordType]:
        seen = set()
        for keyword_type in value:
            if keyword_type.name in seen:
                raise ValueError(f"duplicate keyword type name: {keyword_type.name}")
            seen.add(keyword_type.name)
        return value

    def get(self, name: str) -> Optional[KeywordType]:
        """Keyword type called ``name``, or None."""
        for keyword_type in self.keyword_types:
            if keyword_type.name == name:
                return keyword_type
        return None

    def names(self) -> List[str]:
        """Keyword type names in schema order."""
        return [keyword_type.name for keyword_type in self.keyword_types]


class DocumentTypeSchema(BaseModel):
    """
    A document type and its authoritative keyword schema.

    Only the first keyword record type of a repository document type is
    carried here; further record types are never consulted.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    keyword_schema: KeywordRecordSchema = Field(
        default_factory=KeywordRecordSchema, alias="keywordSchema"
    )
    group_name: Optional[str] = Field(default=None, alias="groupName")


class DocumentTypeGroupSchema(BaseModel):
    """A document type group with its document types, unique by name."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    document_types: List[DocumentTypeSchema] = Field(
        default_factory=list, alias="documentTypes"
    )

    @field_validator("document_types")
    @classmethod
    def _unique_names(cls, value: List[DocumentTypeSchema]) -> List[DocumentTypeSchema]:
        seen = set()
        for document_type in value:
            if document_type.name in seen:
                raise ValueError(f"duplicate document type name: {document_type.name}")
            seen.add(document_type.name)
        return value

    def find(self, name: str) -> Optional[DocumentTypeSchema]:
        for document_type in self.document_types:
            if document_type.name == name:
                return document_type
        return None


class FileTypeHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class ContentDescriptor(BaseModel):
    """One entry of a batch file's ``contents`` array."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    file: Optional[StrictStr] = None
    document_id: Optional[StrictStr] = Field(default=None, alias="documentID")
    document_type: StrictStr = Field(alias="documentType")
    document_type_group: Optional[StrictStr] = Field(default=None, alias="documentTypeGroup")
    file_types: List[StrictStr] = Field(default_factory=list, alias="fileTypes")
    keywords: Dict[StrictStr, StrictStr] = Field(default_factory=dict)


TypedValue = Union[str, int, Decimal, float, datetime]


class TypedKeywordValue(BaseModel):
    """A coerced keyword value tagged with the keyword type it belongs to."""
    model_config = ConfigDict(frozen=True)

    keyword_type: KeywordType
    kind: str
    value: TypedValue

    @property
    def name(self) -> str:
        return self.keyword_type.name


class ExistingKeyword(BaseModel):
    """A keyword value already stored on a repository document."""
    model_config = ConfigDict(frozen=True)

    keyword_type: KeywordType
    value: TypedValue


class DocumentHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    document_type: str
    keywords: List[ExistingKeyword] = Field(default_factory=list)
    keywords_loaded: bool = False


class DocumentLock(BaseModel):
    """Outcome of a lock request; must be released whether obtained or not."""
    model_config = ConfigDict(frozen=True)

    document_id: int
    obtained: bool
    token: Optional[str] = None


class KeywordModification(BaseModel):
    model_config = ConfigDict(frozen=True)

    existing: ExistingKeyword
    replacement: TypedKeywordValue


class QueryHit(BaseModel):
    document_id: int
    display_values: Dict[str, str] = Field(default_factory=dict)
    keyword_values: List[ExistingKeyword] = Field(default_factory=list)


class StoreRequest(BaseModel):
    """Everything the repository needs to store a new document."""
    file_paths: List[str]
    document_type: DocumentTypeSchema
    file_type: FileTypeHandle
    keywords: List[TypedKeywordValue] = Field(default_factory=list)
    document_date: datetime
    comment: str
    skip_workflow: bool = True


class ItemResult(BaseModel):
    """Outcome of a single descriptor."""
    descriptor_index: int
    status: ItemStatus
    resulting_document_id: Optional[int] = None
    matched_document_ids: List[int] = Field(default_factory=list)
    message: Optional[str] = None
    error: Optional[str] = None


class BatchResult(BaseModel):
    """Per-descriptor outcomes of a batch run, in file order."""
    operation: OperationType
    started_at: str
    finished_at: Optional[str] = None
    items: List[ItemResult] = Field(default_factory=list)
    document_ids: List[int] = Field(default_factory=list)

    def record(self, item: ItemResult) -> ItemResult:
        """Append an item result; descriptor indexes must increase."""
        if self.items and item.descriptor_index <= self.items[-1].descriptor_index:
            raise ValueError(
                f"descriptor index {item.descriptor_index} recorded out of order"
            )
        self.items.append(item)
        return item

    def count(self, status: ItemStatus) -> int:
        """Number of items with ``status``."""
        return sum(1 for item in self.items if item.status == status)

    @property
    def succeeded(self) -> int:
        return self.count(ItemStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self.count(ItemStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(ItemStatus.SKIPPED)
