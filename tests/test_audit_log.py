"""Tests for the audit log."""

from __future__ import annotations

import json
from pathlib import Path

from tsera.audit_log import (
    FileTally,
    format_audit_entry,
    get_audit_log_path,
    log_operation,
    read_audit_log,
)


def test_tally_counts_paths_and_bytes():
    tally = FileTally()
    tally.add("schemas/User.schema.ts", 30)
    tally.add("docs/User.md", 12)

    assert tally.files == 2
    assert tally.bytes == 42
    assert FileTally.from_dict(tally.to_dict()) == tally


def test_log_and_read_back(tmp_path: Path):
    log_operation(
        tmp_path,
        "generate",
        written=FileTally(paths=["a.ts", "b.ts"], bytes=40),
        plan={"create": 2},
    )
    log_operation(tmp_path, "doctor-fix", erased=FileTally(paths=["old.ts"], bytes=10), plan={"delete": 1})

    entries = read_audit_log(tmp_path)
    assert [e.operation for e in entries] == ["generate", "doctor-fix"]
    assert entries[0].written.files == 2
    assert entries[0].written.bytes == 40
    assert entries[0].erased.files == 0
    assert entries[1].erased.paths == ["old.ts"]
    assert entries[1].plan == {"delete": 1}
    assert get_audit_log_path(tmp_path) == tmp_path / ".tsera" / "audit.log"


def test_records_are_json_lines(tmp_path: Path):
    log_operation(tmp_path, "generate", plan={"create": 1})
    log_operation(tmp_path, "dev")

    lines = get_audit_log_path(tmp_path).read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[0])["plan"] == {"create": 1}


def test_last_n_and_operation_filter(tmp_path: Path):
    for i in range(5):
        log_operation(tmp_path, "dev" if i % 2 else "generate")

    assert len(read_audit_log(tmp_path, last_n=2)) == 2
    assert read_audit_log(tmp_path, last_n=0) == []
    assert [e.operation for e in read_audit_log(tmp_path, operation="dev")] == ["dev", "dev"]


def test_missing_log_is_empty(tmp_path: Path):
    assert read_audit_log(tmp_path) == []


def test_malformed_lines_are_skipped(tmp_path: Path):
    log_operation(tmp_path, "generate")
    with get_audit_log_path(tmp_path).open("a", encoding="utf-8") as f:
        f.write("not json\n")
        f.write('{"timestamp": "x"}\n')
        f.write("\n")
    log_operation(tmp_path, "dev")

    assert [e.operation for e in read_audit_log(tmp_path)] == ["generate", "dev"]


def test_format_entry(tmp_path: Path):
    entry = log_operation(
        tmp_path,
        "generate",
        written=FileTally(paths=["a.ts", "b.ts", "c.ts"], bytes=120),
        erased=FileTally(paths=["gone.ts"], bytes=7),
        plan={"create": 2, "update": 1, "delete": 1},
    )

    text = format_audit_entry(entry)
    assert "generate  +2 ~1 -1" in text
    assert "wrote 3 file(s), 120 bytes" in text
    assert "erased 1 file(s), 7 bytes" in text
    assert "gone.ts" not in text

    verbose = format_audit_entry(entry, verbose=True)
    assert "    gone.ts" in verbose
    assert "    b.ts" in verbose


def test_format_skips_empty_tallies(tmp_path: Path):
    entry = log_operation(tmp_path, "dev", written=FileTally(paths=["a.ts"], bytes=3))
    text = format_audit_entry(entry)
    assert "wrote 1 file(s)" in text
    assert "erased" not in text
