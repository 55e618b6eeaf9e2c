#!/usr/bin/env python3
"""Example: Run archive, query and reindex batches against an in-memory repository."""

import json
import logging
import os
import sys
import tempfile

from kw_interchange import BatchExecutor, InMemoryRepository, InterchangeError, KeywordType


def build_repository() -> InMemoryRepository:
    repository = InMemoryRepository()
    repository.add_group(1, "TAX")
    repository.add_document_type(
        "TAX",
        101,
        "RETURN",
        [[
            KeywordType(id=1, name="DLN", data_type="AlphaNumeric", required=True),
            KeywordType(id=2, name="Amount", data_type="Currency"),
            KeywordType(id=3, name="Filed", data_type="Date"),
        ]],
    )
    repository.add_file_type(1, "PDF")
    return repository


def write_batch(batch_dir: str, name: str, contents) -> None:
    with open(os.path.join(batch_dir, name), "w", encoding="utf-8") as handle:
        json.dump({"contents": contents}, handle, indent=2)


def main():
    logging.basicConfig(level=os.getenv("KWI_LOG_LEVEL", "INFO"))
    batch_dir = os.getenv("KWI_BATCH_DIR") or tempfile.mkdtemp(prefix="kwi_batch_")
    os.makedirs(batch_dir, exist_ok=True)

    with open(os.path.join(batch_dir, "0001.pdf"), "wb") as handle:
        handle.write(b"%PDF-1.4 example")

    write_batch(batch_dir, "archive.json", [
        {"file": "0001.pdf", "documentType": "RETURN", "fileTypes": ["PDF"],
         "keywords": {"DLN": "06122018", "Amount": "120.50", "Filed": "06/12/2018"}},
        {"file": "missing.pdf", "documentType": "RETURN", "fileTypes": ["PDF"],
         "keywords": {"DLN": "07122018"}},
    ])
    write_batch(batch_dir, "query.json", [
        {"documentType": "RETURN", "keywords": {"DLN": "06122018"}},
    ])

    print("=" * 60)
    print("Keyword Interchange")
    print("=" * 60)
    print(f"Batch directory: {batch_dir}")
    print("=" * 60)
    print()

    repository = build_repository()
    executor = BatchExecutor(repository, batch_dir, document_type_group="TAX", show_progress=True)

    try:
        executor.catalog.export_config(batch_dir)
        archived = executor.run("archive")
        queried = executor.run("query")

        reindex_contents = [
            {"documentID": str(document_id), "documentType": "RETURN", "keywords": {"Amount": "19.99"}}
            for document_id in queried.document_ids
        ]
        write_batch(batch_dir, "reindex.json", reindex_contents)
        reindexed = executor.run("reindex")

        for result in (archived, queried, reindexed):
            path = executor.write_result(result)
            print(
                f"{result.operation.value:<8} success={result.succeeded} "
                f"failed={result.failed} skipped={result.skipped} -> {path}"
            )
    except InterchangeError as e:
        print(f"\nBatch run aborted: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
