"""Unit tests for schema/table introspection helpers."""
import pytest
from unittest.mock import AsyncMock

from gatedpg import introspection


def _column(name, data_type, **extra):
    row = {
        "column_name": name,
        "data_type": data_type,
        "is_nullable": "YES",
        "column_default": None,
        "ordinal_position": 1,
        "character_maximum_length": None,
        "numeric_precision": None,
        "numeric_scale": None,
        "description": None,
    }
    row.update(extra)
    return row


class TestSplitTableName:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("users", ("public", "users")),
            ("sales.orders", ("sales", "orders")),
            ('"sales"."orders"', ("sales", "orders")),
            (" sales . orders ", ("sales", "orders")),
            ("Users", ("public", "users")),
            ("Sales.Orders", ("sales", "orders")),
            ('"Sales"."Orders"', ("Sales", "Orders")),
            ('sales."Order Items"', ("sales", "Order Items")),
            ('"odd.schema".t', ("odd.schema", "t")),
            ('"say ""hi"""', ("public", 'say "hi"')),
        ],
    )
    def test_split(self, raw, expected):
        assert introspection.split_table_name(raw) == expected


class TestDescribeTable:

    async def test_missing_schema(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(return_value=[])

        result = await introspection.describe_table(mock_pool, "nope.users")

        assert result["error"] == "not_found"
        assert result["object"] == "schema"
        assert result["schema"] == "nope"
        assert mock_pool.execute_readonly.await_count == 1

    async def test_missing_table(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(
            return_value=[{"schema_name": "public", "table_name": None, "relkind": None}]
        )

        result = await introspection.describe_table(mock_pool, "ghosts")

        assert introspection.is_not_found(result)
        assert result["object"] == "table"
        assert result["table"] == "ghosts"

    async def test_nested_structure(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(
            side_effect=[
                [{"schema_name": "public", "table_name": "users", "relkind": "r",
                  "description": None}],
                [
                    _column("id", "integer", is_nullable="NO", numeric_precision=32,
                            numeric_scale=0, column_default="nextval('users_id_seq')"),
                    _column("name", "character varying", ordinal_position=2,
                            character_maximum_length=255, description="Display name"),
                ],
            ]
        )

        result = await introspection.describe_table(mock_pool, "users")

        assert result["schema"] == "public"
        assert result["name"] == "users"
        assert result["type"] == "TABLE"
        assert "description" not in result
        id_col, name_col = result["columns"]
        assert id_col["nullable"] is False
        assert id_col["numeric_precision"] == 32
        assert id_col["numeric_scale"] == 0
        assert "character_maximum_length" not in id_col
        assert "description" not in id_col
        assert name_col["character_maximum_length"] == 255
        assert name_col["description"] == "Display name"
        assert "numeric_precision" not in name_col

    async def test_view_type(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(
            side_effect=[
                [{"schema_name": "public", "table_name": "v", "relkind": "v",
                  "description": "A view"}],
                [],
            ]
        )

        result = await introspection.describe_table(mock_pool, "v")

        assert result["type"] == "VIEW"
        assert result["description"] == "A view"

    async def test_parameters_not_interpolated(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(return_value=[])

        await introspection.describe_table(mock_pool, "x'; drop table users; --")

        sql, params = mock_pool.execute_readonly.await_args.args
        assert "drop table" not in sql.lower()
        assert params == ("x'; drop table users; --", "public")


class TestListColumns:

    async def test_not_found_passthrough(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(return_value=[])
        result = await introspection.list_columns(mock_pool, "nope.t")
        assert introspection.is_not_found(result)

    async def test_columns(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(
            side_effect=[
                [{"schema_name": "public", "table_name": "t", "relkind": "r",
                  "description": None}],
                [_column("a", "text")],
            ]
        )
        result = await introspection.list_columns(mock_pool, "t")
        assert result["table"] == "t"
        assert [c["name"] for c in result["columns"]] == ["a"]


class TestListTables:

    async def test_all_schemas(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(
            return_value=[
                {"schema_name": "public", "table_name": "users", "relkind": "r"},
                {"schema_name": "sales", "table_name": "totals", "relkind": "m"},
            ]
        )

        result = await introspection.list_tables(mock_pool)

        assert result["count"] == 2
        assert result["tables"][1] == {
            "schema": "sales", "name": "totals", "type": "MATERIALIZED VIEW"
        }
        sql = mock_pool.execute_readonly.await_args.args[0]
        assert "information_schema" in sql

    async def test_missing_schema(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(side_effect=[[], []])

        result = await introspection.list_tables(mock_pool, "nope")

        assert introspection.is_not_found(result)
        assert result["schema"] == "nope"

    async def test_empty_existing_schema(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(side_effect=[[], [{"found": 1}]])

        result = await introspection.list_tables(mock_pool, "empty")

        assert result == {"tables": [], "count": 0, "schema": "empty"}

    async def test_schema_name_folded(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(side_effect=[[], [{"found": 1}]])

        result = await introspection.list_tables(mock_pool, "Sales")

        assert result["schema"] == "sales"
        assert mock_pool.execute_readonly.await_args_list[0].args[1] == ("sales",)


class TestPlugins:

    async def test_not_steampipe(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(return_value=[])

        result = await introspection.list_plugins(mock_pool)

        assert introspection.is_not_found(result)
        assert result["schema"] == "steampipe_internal"
        assert mock_pool.execute_readonly.await_count == 1

    async def test_list_plugins(self, mock_pool):
        plugins = [
            {"plugin_instance": "aws", "plugin": "hub.steampipe.io/plugins/turbot/aws@latest"},
            {"plugin_instance": "github", "plugin": "hub.steampipe.io/plugins/turbot/github@latest"},
        ]
        mock_pool.execute_readonly = AsyncMock(side_effect=[[{"found": 1}], plugins])

        result = await introspection.list_plugins(mock_pool)

        assert result == {"plugins": plugins, "count": 2}

    async def test_show_plugin_by_instance(self, mock_pool):
        aws = {"plugin_instance": "aws", "plugin": "hub.steampipe.io/plugins/turbot/aws@latest"}
        mock_pool.execute_readonly = AsyncMock(side_effect=[[{"found": 1}], [aws]])

        result = await introspection.show_plugin(mock_pool, " aws ")

        assert result == {"name": "aws", "instances": [aws]}
        sql, params = mock_pool.execute_readonly.await_args.args
        assert params == ("aws", "aws")
        assert "aws" not in sql

    async def test_show_missing_plugin(self, mock_pool):
        mock_pool.execute_readonly = AsyncMock(side_effect=[[{"found": 1}], []])

        result = await introspection.show_plugin(mock_pool, "gcp")

        assert introspection.is_not_found(result)
        assert result["object"] == "plugin"
        assert result["plugin"] == "gcp"
