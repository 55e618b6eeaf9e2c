"""Tests for Keyword Interchange schemas."""

import pytest
from pydantic import ValidationError

from kw_interchange.schemas import (
    BatchResult,
    ContentDescriptor,
    DocumentTypeGroupSchema,
    DocumentTypeSchema,
    ItemResult,
    ItemStatus,
    KeywordDataType,
    KeywordRecordSchema,
    KeywordType,
    OperationType,
)


def test_keyword_type_from_config_aliases():
    """Test KeywordType accepts the config.json field names."""
    kt = KeywordType.model_validate({"id": 7, "name": "DLN", "dataType": "AlphaNumeric", "required": True})

    assert kt.data_type == KeywordDataType.ALPHANUMERIC
    assert kt.required is True


def test_keyword_type_data_type_is_case_sensitive():
    """Test an unknown or mis-cased data type is rejected."""
    with pytest.raises(ValidationError):
        KeywordType.model_validate({"id": 1, "name": "X", "dataType": "currency"})


def test_keyword_record_schema_rejects_duplicate_names():
    """Test keyword names are unique within a record schema."""
    kt = KeywordType(id=1, name="DLN", data_type="AlphaNumeric")
    with pytest.raises(ValidationError):
        KeywordRecordSchema(keyword_types=[kt, kt])


def test_group_lookup_and_duplicate_types():
    """Test group lookup by type name and uniqueness of type names."""
    doc_type = DocumentTypeSchema(id=1, name="RETURN")
    group = DocumentTypeGroupSchema(id=1, name="TAX", document_types=[doc_type])

    assert group.find("RETURN") == doc_type
    assert group.find("W2") is None
    with pytest.raises(ValidationError):
        DocumentTypeGroupSchema(id=1, name="TAX", document_types=[doc_type, doc_type])


def test_content_descriptor_defaults():
    """Test optional descriptor fields default to empty values."""
    descriptor = ContentDescriptor.model_validate({"documentType": "RETURN"})

    assert descriptor.document_type == "RETURN"
    assert descriptor.document_id is None
    assert descriptor.file_types == []
    assert descriptor.keywords == {}


def test_content_descriptor_requires_string_keyword_values():
    """Test keyword values must be JSON strings."""
    with pytest.raises(ValidationError):
        ContentDescriptor.model_validate({"documentType": "RETURN", "keywords": {"Amount": 19.99}})


def test_batch_result_records_in_order():
    """Test BatchResult keeps indices strictly increasing."""
    result = BatchResult(operation=OperationType.QUERY, started_at="2024-01-01T00:00:00Z")
    result.record(ItemResult(descriptor_index=0, status=ItemStatus.SUCCESS))
    result.record(ItemResult(descriptor_index=1, status=ItemStatus.FAILED, error="boom"))
    result.record(ItemResult(descriptor_index=2, status=ItemStatus.SKIPPED))

    assert (result.succeeded, result.failed, result.skipped) == (1, 1, 1)
    with pytest.raises(ValueError):
        result.record(ItemResult(descriptor_index=1, status=ItemStatus.SUCCESS))
