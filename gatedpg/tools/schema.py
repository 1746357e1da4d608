"""Schema, table and plugin discovery tools."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from mcp.server.fastmcp import FastMCP
from gatedpg.db import pool
from gatedpg import introspection
from gatedpg.utils.errors import handle_error
from gatedpg.utils.formatting import (
    ResponseFormat,
    format_table_description,
    format_table_list,
    to_json,
)


class ListTablesInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    schema_name: Optional[str] = Field(
        default=None,
        description="Schema to list tables from (all non-system schemas if omitted)",
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


class TableInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    table_name: str = Field(
        ...,
        description="Table name: schema.table or just table (defaults to public)",
        min_length=1,
    )
    response_format: ResponseFormat = Field(default=ResponseFormat.JSON)


class PluginInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    plugin_name: str = Field(
        ...,
        description="Plugin instance name or plugin reference",
        min_length=1,
    )


_READ_ONLY_ANNOTATIONS = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False,
}


def register_schema_tools(mcp: FastMCP):

    @mcp.tool(
        name="list_tables",
        annotations={"title": "List Tables", **_READ_ONLY_ANNOTATIONS},
    )
    async def list_tables(params: ListTablesInput) -> str:
        """List tables and views with their schema and type.
        Internal PostgreSQL schemas (pg_*, information_schema) are skipped
        unless asked for by name."""
        try:
            result = await introspection.list_tables(pool, params.schema_name)
            if introspection.is_not_found(result):
                return to_json(result)
            return format_table_list(result, fmt=params.response_format)
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="list_columns",
        annotations={"title": "List Table Columns", **_READ_ONLY_ANNOTATIONS},
    )
    async def list_columns(params: TableInput) -> str:
        """List the columns of a table in ordinal order: name, type,
        nullability, default, and length/precision/comment where set."""
        try:
            result = await introspection.list_columns(pool, params.table_name)
            return to_json(result)
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="describe_table",
        annotations={"title": "Describe Table", **_READ_ONLY_ANNOTATIONS},
    )
    async def describe_table(params: TableInput) -> str:
        """Get the full description of a table: schema, name, type
        (table/view/...) and its columns. Essential for writing queries."""
        try:
            result = await introspection.describe_table(pool, params.table_name)
            if introspection.is_not_found(result):
                return to_json(result)
            return format_table_description(result, fmt=params.response_format)
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="list_plugins",
        annotations={"title": "List Steampipe Plugins", **_READ_ONLY_ANNOTATIONS},
    )
    async def list_plugins() -> str:
        """List the Steampipe plugins installed in the backing database.
        Returns a not_found result on servers that are not Steampipe."""
        try:
            return to_json(await introspection.list_plugins(pool))
        except Exception as e:
            return handle_error(e)

    @mcp.tool(
        name="show_plugin",
        annotations={"title": "Show Steampipe Plugin", **_READ_ONLY_ANNOTATIONS},
    )
    async def show_plugin(params: PluginInput) -> str:
        """Show a Steampipe plugin by instance name (e.g. 'aws') or plugin
        reference (e.g. 'hub.steampipe.io/plugins/turbot/aws@latest')."""
        try:
            return to_json(await introspection.show_plugin(pool, params.plugin_name))
        except Exception as e:
            return handle_error(e)
