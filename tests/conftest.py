"""Shared fixtures for Keyword Interchange tests."""

import json

import pytest

from kw_interchange.memory import InMemoryRepository
from kw_interchange.schemas import KeywordType


def keyword_type(type_id, name, data_type, required=False):
    return KeywordType(id=type_id, name=name, data_type=data_type, required=required)


@pytest.fixture
def repository():
    """Repository with a TAX group holding RETURN and W2 document types."""
    repo = InMemoryRepository()
    repo.add_group(1, "TAX")
    repo.add_document_type(
        "TAX",
        101,
        "RETURN",
        [[
            keyword_type(1, "DLN", "AlphaNumeric", required=True),
            keyword_type(2, "Amount", "Currency"),
            keyword_type(3, "Filed", "Date"),
            keyword_type(4, "Pages", "Numeric9"),
        ]],
    )
    repo.add_document_type(
        "TAX",
        102,
        "W2",
        [
            [keyword_type(5, "SSN", "AlphaNumeric")],
            [keyword_type(6, "Employer", "AlphaNumeric")],
        ],
    )
    repo.add_group(2, "HR")
    repo.add_document_type("HR", 201, "CONTRACT", [[keyword_type(7, "Start", "DateTime")]])
    repo.add_file_type(1, "PDF")
    repo.add_file_type(2, "TIFF")
    return repo


@pytest.fixture
def write_batch(tmp_path):
    """Write ``{"contents": [...]}`` to a named file in the batch directory."""
    def _write(name, contents):
        path = tmp_path / name
        path.write_text(json.dumps({"contents": contents}), encoding="utf-8")
        return path
    return _write
