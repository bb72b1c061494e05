"""
Audit log of applied generations.

Every applied cycle that changed something appends one JSON Lines record to
``.tsera/audit.log``: which files were written, which were erased, and the
plan counts that led there. The log is an operational record only; planning
never reads it, and deleting it is harmless.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .engine.state import STATE_DIR

AUDIT_FILENAME = "audit.log"


@dataclass
class FileTally:
    """Project-relative paths touched by one kind of change, with total size."""
    paths: list[str] = field(default_factory=list)
    bytes: int = 0

    @property
    def files(self) -> int:
        return len(self.paths)

    def add(self, path: str, size: int) -> None:
        self.paths.append(path)
        self.bytes += size

    def to_dict(self) -> dict[str, Any]:
        return {"paths": list(self.paths), "bytes": self.bytes}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileTally":
        return cls(paths=[str(p) for p in data.get("paths", [])], bytes=int(data.get("bytes", 0)))


@dataclass
class AuditEntry:
    timestamp: str
    operation: str
    written: FileTally
    erased: FileTally
    plan: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "written": self.written.to_dict(),
            "erased": self.erased.to_dict(),
            "plan": self.plan,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            written=FileTally.from_dict(data.get("written", {})),
            erased=FileTally.from_dict(data.get("erased", {})),
            plan=dict(data.get("plan", {})),
        )


def get_audit_log_path(project_dir: Path) -> Path:
    return Path(project_dir) / STATE_DIR / AUDIT_FILENAME


def log_operation(
    project_dir: Path,
    operation: str,
    written: FileTally | None = None,
    erased: FileTally | None = None,
    plan: dict[str, int] | None = None,
) -> AuditEntry:
    """
    Append one record to the audit log.

    Args:
        project_dir: Project root
        operation: What applied the changes ("generate", "doctor-fix", "dev")
        written: Files created or rewritten
        erased: Files deleted
        plan: Plan counts (create/update/delete/noop)

    Returns:
        The appended entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        operation=operation,
        written=written or FileTally(),
        erased=erased or FileTally(),
        plan=dict(plan or {}),
    )

    log_path = get_audit_log_path(project_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict(), sort_keys=True) + "\n")

    return entry


def read_audit_log(
    project_dir: Path,
    last_n: int | None = None,
    operation: str | None = None,
) -> list[AuditEntry]:
    """
    Read audit records, oldest first.

    Lines that are not valid records are skipped.
    """
    log_path = get_audit_log_path(project_dir)
    if not log_path.exists():
        return []

    entries: list[AuditEntry] = []
    for line in log_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            entry = AuditEntry.from_dict(json.loads(line))
        except (KeyError, TypeError, ValueError):
            continue
        if operation is None or entry.operation == operation:
            entries.append(entry)

    if last_n is not None:
        return entries[-last_n:] if last_n > 0 else []
    return entries


def format_audit_entry(entry: AuditEntry, *, verbose: bool = False) -> str:
    """Human-readable rendering; ``verbose`` lists every path."""
    counts = " ".join(
        f"{symbol}{entry.plan.get(key, 0)}"
        for symbol, key in (("+", "create"), ("~", "update"), ("-", "delete"))
    )
    lines = [f"{entry.timestamp}  {entry.operation}  {counts}"]

    for label, tally in (("wrote", entry.written), ("erased", entry.erased)):
        if not tally.files:
            continue
        lines.append(f"  {label} {tally.files} file(s), {tally.bytes} bytes")
        if verbose:
            lines.extend(f"    {path}" for path in tally.paths)

    return "\n".join(lines)
