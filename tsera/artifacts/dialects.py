"""
SQL dialect strategies for migration DDL.

One implementation per dialect, selected from configuration once and passed
to the migration builder.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from ..engine.dag import slugify
from ..models import EntityDef, FieldDef, stored_fields


class Dialect(ABC):
    """DDL rendering for one SQL dialect."""

    name: str = ""

    @abstractmethod
    def column_type(self, f: FieldDef) -> str:
        ...

    @abstractmethod
    def quote(self, identifier: str) -> str:
        ...

    @abstractmethod
    def current_timestamp(self) -> str:
        ...

    def boolean_literal(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def create_index(self, index_name: str, table: str, column: str) -> str:
        return (
            f"CREATE INDEX IF NOT EXISTS {self.quote(index_name)} "
            f"ON {self.quote(table)} ({self.quote(column)});"
        )

    def literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_literal(value)
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            text = value
        else:
            text = json.dumps(value, sort_keys=True, default=str)
        return "'" + text.replace("'", "''") + "'"

    def column_definition(self, f: FieldDef) -> str:
        parts = [self.quote(slugify(f.name)), self.column_type(f)]
        if f.db.primary:
            parts.append("PRIMARY KEY")
        elif not (f.optional or f.nullable):
            parts.append("NOT NULL")
        if f.db.unique and not f.db.primary:
            parts.append("UNIQUE")
        if f.db.default_now:
            parts.append(f"DEFAULT {self.current_timestamp()}")
        elif f.has_default:
            parts.append(f"DEFAULT {self.literal(f.default)}")
        return " ".join(parts)

    def create_table(self, entity: EntityDef) -> str:
        """Render the full DDL for one entity."""
        table = slugify(entity.name)
        columns = stored_fields(entity)
        lines = [f"CREATE TABLE IF NOT EXISTS {self.quote(table)} ("]
        for i, f in enumerate(columns):
            suffix = "," if i < len(columns) - 1 else ""
            lines.append(f"  {self.column_definition(f)}{suffix}")
        lines.append(");")

        for f in columns:
            if f.db.index and not (f.db.primary or f.db.unique):
                column = slugify(f.name)
                lines.append(self.create_index(f"{table}_{column}_idx", table, column))
        return "\n".join(lines)


class PostgresDialect(Dialect):
    name = "postgres"

    _TYPES = {
        "string": "text",
        "number": "double precision",
        "integer": "integer",
        "boolean": "boolean",
        "date": "timestamptz",
        "json": "jsonb",
        "array": "jsonb",
    }

    def column_type(self, f: FieldDef) -> str:
        return self._TYPES[f.type]

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def current_timestamp(self) -> str:
        return "now()"


class SqliteDialect(Dialect):
    name = "sqlite"

    _TYPES = {
        "string": "text",
        "number": "real",
        "integer": "integer",
        "boolean": "integer",
        "date": "text",
        "json": "text",
        "array": "text",
    }

    def column_type(self, f: FieldDef) -> str:
        return self._TYPES[f.type]

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def current_timestamp(self) -> str:
        return "CURRENT_TIMESTAMP"

    def boolean_literal(self, value: bool) -> str:
        return "1" if value else "0"


class MysqlDialect(Dialect):
    name = "mysql"

    _TYPES = {
        "string": "varchar(255)",
        "number": "double",
        "integer": "int",
        "boolean": "boolean",
        "date": "datetime",
        "json": "json",
        "array": "json",
    }

    def column_type(self, f: FieldDef) -> str:
        return self._TYPES[f.type]

    def quote(self, identifier: str) -> str:
        return "`" + identifier.replace("`", "``") + "`"

    def current_timestamp(self) -> str:
        return "CURRENT_TIMESTAMP"

    def create_index(self, index_name: str, table: str, column: str) -> str:
        # MySQL has no IF NOT EXISTS for indexes
        return f"CREATE INDEX {self.quote(index_name)} ON {self.quote(table)} ({self.quote(column)});"


DIALECTS: dict[str, type[Dialect]] = {
    PostgresDialect.name: PostgresDialect,
    SqliteDialect.name: SqliteDialect,
    MysqlDialect.name: MysqlDialect,
}


def get_dialect(name: str) -> Dialect:
    try:
        return DIALECTS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown SQL dialect {name!r} (expected one of {', '.join(DIALECTS)})") from None
