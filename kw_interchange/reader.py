"""Load batch descriptor files from disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from .errors import MalformedBatchError
from .schemas import ContentDescriptor, OperationType


BATCH_FILENAMES = {
    OperationType.QUERY: "query.json",
    OperationType.ARCHIVE: "archive.json",
    OperationType.REINDEX: "reindex.json",
}


def operation_for_file(filename: str) -> OperationType:
    """Map a batch file name (e.g. ``archive.json``) to its operation."""
    name = Path(filename).name.lower()
    for operation, batch_name in BATCH_FILENAMES.items():
        if name == batch_name:
            return operation
    raise MalformedBatchError(f"no operation is driven by batch file: {filename}")


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise MalformedBatchError(f"duplicate key: {key}")
        result[key] = value
    return result


def _check_operation_fields(descriptor: ContentDescriptor, operation: OperationType, index: int) -> None:
    if operation == OperationType.ARCHIVE:
        if not descriptor.file:
            raise MalformedBatchError("archive entry requires 'file'", index)
        if not descriptor.file_types:
            raise MalformedBatchError("archive entry requires at least one 'fileTypes' entry", index)
    elif operation == OperationType.REINDEX:
        if not descriptor.document_id:
            raise MalformedBatchError("reindex entry requires 'documentID'", index)


def parse_batch(
    content: Union[bytes, str],
    operation: Optional[OperationType] = None,
) -> List[ContentDescriptor]:
    """
    Parse a batch file into content descriptors, preserving array order.

    Args:
        content: Raw JSON of the batch file
        operation: When given, also enforce the fields that operation needs

    Returns:
        Descriptors in the order they appear under ``contents``

    Raises:
        MalformedBatchError: If the JSON is invalid, ``contents`` is missing,
            or an entry lacks required fields
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedBatchError(f"batch file is not UTF-8: {exc}") from exc

    try:
        data = json.loads(content, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as exc:
        raise MalformedBatchError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict) or "contents" not in data:
        raise MalformedBatchError("top-level 'contents' array is missing")
    contents = data["contents"]
    if not isinstance(contents, list):
        raise MalformedBatchError("'contents' must be an array")

    descriptors: List[ContentDescriptor] = []
    for index, entry in enumerate(contents):
        if not isinstance(entry, dict):
            raise MalformedBatchError("entry must be an object", index)
        try:
            descriptor = ContentDescriptor.model_validate(entry)
        except ValidationError as exc:
            fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
            raise MalformedBatchError(f"invalid fields: {fields}", index) from exc
        if operation is not None:
            _check_operation_fields(descriptor, operation, index)
        descriptors.append(descriptor)
    return descriptors


def read_batch_file(path: Union[str, Path], operation: Optional[OperationType] = None) -> List[ContentDescriptor]:
    """
    Read and parse a batch file.

    Raises:
        MalformedBatchError: If the file does not exist or cannot be parsed
    """
    batch_file = Path(path)
    if not batch_file.is_file():
        raise MalformedBatchError(f"batch file not found: {batch_file}")
    if operation is None:
        operation = operation_for_file(batch_file.name)
    return parse_batch(batch_file.read_bytes(), operation)
