"""Tests for the command line entry point."""

import json

from kw_interchange.cli import main


SNAPSHOT = {
    "groups": [
        {
            "id": 1,
            "name": "TAX",
            "documentTypes": [
                {
                    "id": 10,
                    "name": "RETURN",
                    "keywordTypes": [
                        {"id": 1, "name": "DLN", "dataType": "AlphaNumeric", "required": True},
                        {"id": 2, "name": "Amount", "dataType": "Currency"},
                    ],
                }
            ],
        }
    ],
    "fileTypes": [{"id": 1, "name": "PDF"}],
    "documents": [
        {"id": 42, "documentType": "RETURN", "keywords": {"DLN": "06122018", "Amount": "5.00"},
         "content": "pdf-bytes", "extension": "pdf"}
    ],
}


def _args(tmp_path, *command):
    snapshot = tmp_path / "repository.json"
    snapshot.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
    return [
        "--batch-dir", str(tmp_path),
        "--repository", str(snapshot),
        "--group", "TAX",
        "--no-progress",
        *command,
    ]


def test_config_command(tmp_path, capsys):
    """Test the config command writes config.json."""
    assert main(_args(tmp_path, "config")) == 0

    data = json.loads((tmp_path / "config.json").read_text(encoding="utf-8"))
    assert data[0]["documentTypes"][0]["name"] == "RETURN"
    assert "config.json" in capsys.readouterr().out


def test_query_with_export(tmp_path, write_batch, capsys):
    """Test query --export downloads matches and writes both result logs."""
    write_batch("query.json", [{"documentType": "RETURN", "keywords": {"DLN": "06122018"}}])

    assert main(_args(tmp_path, "query", "--export")) == 0

    assert (tmp_path / "downloads" / "42.pdf").read_bytes() == b"pdf-bytes"
    query_log = json.loads((tmp_path / "query_result.json").read_text(encoding="utf-8"))
    assert query_log["document_ids"] == [42]
    assert (tmp_path / "export_result.json").exists()
    assert "success=1" in capsys.readouterr().out


def test_missing_batch_file_exits_with_error(tmp_path, capsys):
    """Test a run-level failure returns 1 with a terminal message."""
    assert main(_args(tmp_path, "reindex")) == 1
    assert "Batch run aborted" in capsys.readouterr().err


def test_missing_repository_is_reported(tmp_path, capsys):
    """Test running without a repository snapshot fails cleanly."""
    assert main(["--batch-dir", str(tmp_path), "--no-progress", "query"]) == 1
    assert "no repository configured" in capsys.readouterr().err
