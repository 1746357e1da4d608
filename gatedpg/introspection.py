"""Schema and table introspection built on the read-only executor.

All queries are fixed and parametrized; callers only supply names. A missing
schema or table yields a not-found dict instead of an exception.
"""
import re
from typing import Any, Optional

from gatedpg.db import DatabasePool

DEFAULT_SCHEMA = "public"

_RELKINDS = {
    "r": "TABLE",
    "p": "PARTITIONED TABLE",
    "v": "VIEW",
    "m": "MATERIALIZED VIEW",
    "f": "FOREIGN TABLE",
}

# Reported only when the catalog has a value for them
_OPTIONAL_COLUMN_FIELDS = (
    "character_maximum_length",
    "numeric_precision",
    "numeric_scale",
    "description",
)

_LOOKUP_TABLE_SQL = """SELECT n.nspname AS schema_name, c.relname AS table_name,
       c.relkind, obj_description(c.oid, 'pg_class') AS description
FROM pg_catalog.pg_namespace n
LEFT JOIN pg_catalog.pg_class c
       ON c.relnamespace = n.oid AND c.relname = %s
      AND c.relkind IN ('r', 'p', 'v', 'm', 'f')
WHERE n.nspname = %s"""

_COLUMNS_SQL = """SELECT col.column_name, col.data_type, col.is_nullable,
       col.column_default, col.ordinal_position,
       col.character_maximum_length, col.numeric_precision, col.numeric_scale,
       d.description
FROM information_schema.columns col
JOIN pg_catalog.pg_namespace n ON n.nspname = col.table_schema
JOIN pg_catalog.pg_class c ON c.relnamespace = n.oid AND c.relname = col.table_name
JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attname = col.column_name
LEFT JOIN pg_catalog.pg_description d ON d.objoid = c.oid AND d.objsubid = a.attnum
WHERE col.table_schema = %s AND col.table_name = %s
ORDER BY col.ordinal_position"""

_LIST_TABLES_SQL = """SELECT n.nspname AS schema_name, c.relname AS table_name, c.relkind
FROM pg_catalog.pg_class c
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
WHERE c.relkind IN ('r', 'p', 'v', 'm', 'f')
  AND {where}
ORDER BY n.nspname, c.relname"""

_SYSTEM_SCHEMA_FILTER = "n.nspname !~ '^pg_' AND n.nspname <> 'information_schema'"

_SCHEMA_EXISTS_SQL = "SELECT 1 AS found FROM pg_catalog.pg_namespace WHERE nspname = %s"


_NAME_PART = r'\s*("(?:[^"]|"")*"|[^."]*?)\s*'
_QUALIFIED_NAME = re.compile(rf"{_NAME_PART}(?:\.{_NAME_PART})?")


def _identifier(part: str) -> str:
    """Fold unquoted identifiers to lower case; keep quoted ones verbatim."""
    if len(part) >= 2 and part.startswith('"') and part.endswith('"'):
        return part[1:-1].replace('""', '"')
    return part.lower()


def split_table_name(table_name: str) -> tuple[str, str]:
    """'schema.table' -> (schema, table); bare names default to public.

    Follows PostgreSQL's identifier rules: ``Sales.Orders`` names
    sales.orders, ``"Sales"."Orders"`` keeps its case.
    """
    match = _QUALIFIED_NAME.fullmatch(table_name)
    if match is None:
        return DEFAULT_SCHEMA, table_name.strip()
    first, second = match.groups()
    if second is None:
        return DEFAULT_SCHEMA, _identifier(first)
    return _identifier(first) or DEFAULT_SCHEMA, _identifier(second)


def not_found(schema: str, table: Optional[str] = None) -> dict[str, Any]:
    if table is None:
        message = f"Schema '{schema}' does not exist"
        kind = "schema"
    else:
        message = f"Table '{schema}.{table}' does not exist"
        kind = "table"
    result = {"error": "not_found", "object": kind, "schema": schema, "message": message}
    if table is not None:
        result["table"] = table
    return result


def is_not_found(result: Any) -> bool:
    return isinstance(result, dict) and result.get("error") == "not_found"


def _column_entry(row: dict) -> dict[str, Any]:
    entry = {
        "name": row["column_name"],
        "type": row["data_type"],
        "nullable": row.get("is_nullable") == "YES",
        "default": row.get("column_default"),
        "position": row.get("ordinal_position"),
    }
    for key in _OPTIONAL_COLUMN_FIELDS:
        if row.get(key) is not None:
            entry[key] = row[key]
    return entry


async def describe_table(pool: DatabasePool, table_name: str) -> dict[str, Any]:
    """Return ``{schema, name, type, columns}`` or a not-found result."""
    schema, table = split_table_name(table_name)

    found = await pool.execute_readonly(_LOOKUP_TABLE_SQL, (table, schema))
    if not found:
        return not_found(schema)
    relation = found[0]
    if relation.get("table_name") is None:
        return not_found(schema, table)

    rows = await pool.execute_readonly(_COLUMNS_SQL, (schema, table))
    result = {
        "schema": schema,
        "name": table,
        "type": _RELKINDS.get(relation.get("relkind"), "OTHER"),
        "columns": [_column_entry(r) for r in rows],
    }
    if relation.get("description") is not None:
        result["description"] = relation["description"]
    return result


async def list_columns(pool: DatabasePool, table_name: str) -> dict[str, Any]:
    described = await describe_table(pool, table_name)
    if is_not_found(described):
        return described
    return {
        "schema": described["schema"],
        "table": described["name"],
        "columns": described["columns"],
    }


async def list_tables(pool: DatabasePool, schema: str = None) -> dict[str, Any]:
    """List tables and views, in one schema or across all non-system schemas."""
    if schema:
        schema = _identifier(schema.strip())
        rows = await pool.execute_readonly(
            _LIST_TABLES_SQL.format(where="n.nspname = %s"), (schema,)
        )
        if not rows and not await pool.execute_readonly(_SCHEMA_EXISTS_SQL, (schema,)):
            return not_found(schema)
    else:
        rows = await pool.execute_readonly(
            _LIST_TABLES_SQL.format(where=_SYSTEM_SCHEMA_FILTER)
        )

    tables = [
        {
            "schema": r["schema_name"],
            "name": r["table_name"],
            "type": _RELKINDS.get(r["relkind"], "OTHER"),
        }
        for r in rows
    ]
    result = {"tables": tables, "count": len(tables)}
    if schema:
        result["schema"] = schema
    return result


# Steampipe keeps its installed plugins in a catalog table. Plain PostgreSQL
# servers have no such schema, which is reported as not found.
PLUGIN_SCHEMA = "steampipe_internal"

_PLUGIN_TABLE_EXISTS_SQL = """SELECT 1 AS found
FROM pg_catalog.pg_class c
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
WHERE n.nspname = %s AND c.relname = 'steampipe_plugin'"""

_LIST_PLUGINS_SQL = "SELECT * FROM steampipe_internal.steampipe_plugin ORDER BY plugin"

_SHOW_PLUGIN_SQL = """SELECT * FROM steampipe_internal.steampipe_plugin
WHERE plugin_instance = %s OR plugin = %s
ORDER BY plugin_instance"""


async def _has_plugin_catalog(pool: DatabasePool) -> bool:
    return bool(await pool.execute_readonly(_PLUGIN_TABLE_EXISTS_SQL, (PLUGIN_SCHEMA,)))


async def list_plugins(pool: DatabasePool) -> dict[str, Any]:
    """Installed Steampipe plugins, one entry per plugin instance."""
    if not await _has_plugin_catalog(pool):
        return not_found(PLUGIN_SCHEMA)
    rows = await pool.execute_readonly(_LIST_PLUGINS_SQL)
    return {"plugins": rows, "count": len(rows)}


async def show_plugin(pool: DatabasePool, name: str) -> dict[str, Any]:
    """Every instance whose instance name or plugin reference equals ``name``."""
    name = name.strip()
    if not await _has_plugin_catalog(pool):
        return not_found(PLUGIN_SCHEMA)
    rows = await pool.execute_readonly(_SHOW_PLUGIN_SQL, (name, name))
    if not rows:
        return {
            "error": "not_found",
            "object": "plugin",
            "schema": PLUGIN_SCHEMA,
            "plugin": name,
            "message": f"Plugin '{name}' is not installed",
        }
    return {"name": name, "instances": rows}
