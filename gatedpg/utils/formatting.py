"""Response formatting helpers."""
import json
from enum import Enum
from typing import Any


class ResponseFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def _cell(value: Any) -> str:
    if value is None:
        return "NULL"
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_query_results(
    rows: list[dict],
    fmt: ResponseFormat = ResponseFormat.JSON,
    row_cap: int = None,
) -> str:
    """Rows as JSON, or as a markdown table with NULLs spelled out.

    ``row_cap`` is the limit the executor applied; reaching it adds a note
    that more rows may exist.
    """
    if fmt == ResponseFormat.JSON:
        return to_json(rows)
    if not rows:
        return "_Query returned no rows._"
    cols = list(rows[0])
    table = [
        "| " + " | ".join(cols) + " |",
        "|" + "---|" * len(cols),
    ]
    table.extend("| " + " | ".join(_cell(r.get(c)) for c in cols) + " |" for r in rows)
    if row_cap and len(rows) >= row_cap:
        table.append(f"\n_Stopped at {row_cap} rows; narrow the query to see the rest._")
    return "\n".join(table)


def format_table_list(
    result: dict, fmt: ResponseFormat = ResponseFormat.JSON
) -> str:
    if fmt == ResponseFormat.JSON:
        return to_json(result)
    tables = result.get("tables", [])
    if not tables:
        return "_No tables found._"
    lines = ["## Tables\n"]
    for t in tables:
        lines.append(f"- **{t['schema']}.{t['name']}** ({t['type']})")
    return "\n".join(lines)


def format_table_description(
    table: dict, fmt: ResponseFormat = ResponseFormat.JSON
) -> str:
    if fmt == ResponseFormat.JSON:
        return to_json(table)
    name = f"{table.get('schema')}.{table.get('name', table.get('table'))}"
    lines = [f"## Table: `{name}`\n"]
    if table.get("description"):
        lines.append(f"{table['description']}\n")
    lines.append("| Column | Type | Nullable | Default |")
    lines.append("| --- | --- | --- | --- |")
    for c in table.get("columns", []):
        col_type = c["type"]
        if "character_maximum_length" in c:
            col_type = f"{col_type}({c['character_maximum_length']})"
        lines.append(
            f"| {c['name']} | {col_type} | "
            f"{'YES' if c.get('nullable') else 'NO'} | {c.get('default') or ''} |"
        )
    return "\n".join(lines)
