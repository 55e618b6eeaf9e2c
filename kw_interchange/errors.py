"""Exceptions raised while running keyword interchange batches."""

from __future__ import annotations

from typing import Optional


class InterchangeError(Exception):
    """Base class for all keyword interchange failures."""
    pass


class ConfigurationError(InterchangeError):
    """Raised when settings are missing or invalid."""
    pass


class NotFoundError(InterchangeError):
    """Raised when a group, document type, file type or document has no match."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} not found: {name}")


class MalformedBatchError(InterchangeError):
    """Raised when a batch file is missing, unparsable or incomplete."""

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        if index is not None:
            message = f"contents[{index}]: {message}"
        super().__init__(message)


class CoercionError(InterchangeError):
    """Raised when a raw value cannot be parsed as its keyword's data type."""

    def __init__(self, keyword_name: str, raw_value: str, data_type: str):
        self.keyword_name = keyword_name
        self.raw_value = raw_value
        self.data_type = data_type
        super().__init__(
            f"cannot convert {raw_value!r} to {data_type} for keyword {keyword_name}"
        )


class LockError(InterchangeError):
    """Raised when a document lock is not granted."""

    def __init__(self, document_id: int):
        self.document_id = document_id
        super().__init__(f"failed to lock document {document_id}")


class StoreError(InterchangeError):
    """Raised when the repository rejects a new document."""
    pass


class ModifyError(InterchangeError):
    """Raised when the repository rejects a keyword modification."""
    pass
