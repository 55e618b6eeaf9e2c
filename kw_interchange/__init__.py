"""Keyword Interchange - batch metadata exchange with a document repository."""

from .catalog import KeywordSchemaCatalog
from .coercion import coerce, coerce_keywords, convert, format_value
from .errors import (
    CoercionError,
    ConfigurationError,
    InterchangeError,
    LockError,
    MalformedBatchError,
    ModifyError,
    NotFoundError,
    StoreError,
)
from .executor import BatchExecutor
from .memory import InMemoryRepository
from .reader import parse_batch, read_batch_file
from .repository import DocumentRepository, locked_document
from .schemas import (
    BatchResult,
    ContentDescriptor,
    ItemResult,
    ItemStatus,
    KeywordDataType,
    KeywordType,
    OperationType,
    TypedKeywordValue,
)

__version__ = "0.1.0"

__all__ = [
    "BatchExecutor",
    "BatchResult",
    "CoercionError",
    "ConfigurationError",
    "ContentDescriptor",
    "DocumentRepository",
    "InMemoryRepository",
    "InterchangeError",
    "ItemResult",
    "ItemStatus",
    "KeywordDataType",
    "KeywordSchemaCatalog",
    "KeywordType",
    "LockError",
    "MalformedBatchError",
    "ModifyError",
    "NotFoundError",
    "OperationType",
    "StoreError",
    "TypedKeywordValue",
    "coerce",
    "coerce_keywords",
    "convert",
    "format_value",
    "locked_document",
    "parse_batch",
    "read_batch_file",
]
