"""Command line entry point for keyword interchange batches."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from .catalog import KeywordSchemaCatalog
from .config import Settings, load_settings
from .errors import ConfigurationError, InterchangeError
from .executor import BatchExecutor
from .memory import InMemoryRepository
from .repository import DocumentRepository
from .schemas import BatchResult, OperationType


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kw-interchange",
        description="Query, archive and re-index repository documents from JSON batch files",
    )
    parser.add_argument("--batch-dir", help="Directory holding the batch files (KWI_BATCH_DIR)")
    parser.add_argument("--group", help="Document type group for archive runs (KWI_DOCUMENT_TYPE_GROUP)")
    parser.add_argument("--repository", help="Repository snapshot JSON (KWI_REPOSITORY_SNAPSHOT)")
    parser.add_argument("--download-dir", help="Export target directory (KWI_DOWNLOAD_DIR)")
    parser.add_argument("--log-level", help="Logging level (KWI_LOG_LEVEL)")
    parser.add_argument("--no-progress", action="store_true", help="Hide progress bars")

    subparsers = parser.add_subparsers(dest="command", required=True)
    config_parser = subparsers.add_parser("config", help="Write config.json describing document types")
    config_parser.add_argument("--only-group", action="store_true", help="Limit the dump to --group")

    query_parser = subparsers.add_parser("query", help="Run query.json")
    query_parser.add_argument("--export", action="store_true", help="Download every matched document")

    subparsers.add_parser("archive", help="Run archive.json")
    subparsers.add_parser("reindex", help="Run reindex.json")

    export_parser = subparsers.add_parser("export", help="Download documents by id")
    export_parser.add_argument("ids", nargs="+", type=int, help="Document ids")
    return parser


def open_repository(settings: Settings) -> DocumentRepository:
    if settings.repository_snapshot is None:
        raise ConfigurationError("no repository configured; set KWI_REPOSITORY_SNAPSHOT or --repository")
    try:
        return InMemoryRepository.from_snapshot(str(settings.repository_snapshot))
    except (OSError, ValueError, KeyError) as exc:
        raise ConfigurationError(f"cannot load repository snapshot: {exc}") from exc


def _print_summary(result: BatchResult, elapsed: float, result_path) -> None:
    print(
        "Batch summary: "
        f"operation={result.operation.value}, success={result.succeeded}, "
        f"failed={result.failed}, skipped={result.skipped}"
    )
    print(f"Batch summary: duration={elapsed:.1f}s, result_log={result_path}")
    failures = [item for item in result.items if item.error]
    for item in failures[:10]:
        print(f"  - contents[{item.descriptor_index}]: {item.error}")
    if len(failures) > 10:
        print(f"  ... and {len(failures) - 10} more")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            batch_dir=args.batch_dir,
            document_type_group=args.group,
            repository_snapshot=args.repository,
            download_dir=args.download_dir,
            log_level=args.log_level,
            show_progress=False if args.no_progress else None,
        )
    except InterchangeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    start_time = time.perf_counter()
    try:
        repository = open_repository(settings)
        catalog = KeywordSchemaCatalog(repository)

        if args.command == "config":
            group = settings.document_type_group if args.only_group else None
            path = catalog.export_config(str(settings.batch_dir), group)
            print(f"Configuration written to {path}")
            return 0

        executor = BatchExecutor(
            repository,
            str(settings.batch_dir),
            catalog=catalog,
            document_type_group=settings.document_type_group,
            download_dir=str(settings.resolved_download_dir),
            show_progress=settings.show_progress,
        )

        results: List[BatchResult] = []
        if args.command == "export":
            results.append(executor.export(args.ids))
        else:
            results.append(executor.run(OperationType(args.command)))
            if args.command == "query" and args.export:
                results.append(executor.export())

        for result in results:
            result_path = executor.write_result(result)
            _print_summary(result, time.perf_counter() - start_time, result_path)
        return 0

    except InterchangeError as exc:
        print(f"\nBatch run aborted: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
