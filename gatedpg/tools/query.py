"""Read-only SQL query tool.

Any SQL may be submitted. It runs inside a READ ONLY transaction that is
always rolled back, so PostgreSQL itself rejects writes.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from mcp.server.fastmcp import FastMCP
from gatedpg.config import config
from gatedpg.db import pool
from gatedpg.utils.errors import handle_error
from gatedpg.utils.formatting import ResponseFormat, format_query_results


class QueryInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    sql: str = Field(
        ...,
        description="The SQL query to execute",
        min_length=1,
        max_length=50000,
    )
    max_rows: Optional[int] = Field(
        default=None, description="Maximum rows to return (1-1000)", ge=1, le=1000
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


def register_query_tools(mcp: FastMCP):

    @mcp.tool(
        name="query",
        annotations={
            "title": "Run Read-Only SQL Query",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        },
    )
    async def query(params: QueryInput) -> str:
        """Run a read-only SQL query against the PostgreSQL database.

        The statement runs in a READ ONLY transaction which is always rolled
        back. INSERT, UPDATE, DELETE and DDL are rejected by the database.
        Returns rows as JSON (default) or a markdown table.
        """
        try:
            rows = await pool.execute_readonly(params.sql, max_rows=params.max_rows)
            return format_query_results(
                rows,
                fmt=params.response_format,
                row_cap=params.max_rows or config.max_rows,
            )
        except Exception as e:
            return handle_error(e)
