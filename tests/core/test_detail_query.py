# tests/core/test_detail_query.py
"""Tests for the resolving query decorator.

The wrapped QueryBuilder is a mock: these tests check which column targets
reach it, not the SQL it produces.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import column

from detailstore.contracts import MissingDetailColumnError
from detailstore.core.query import UNSET, DetailQueryBuilder, QueryBuilder
from tests.fixtures.entities import ModelWithoutDetailColumn, SampleModel

DECLARED = ["id", "detail", "created_at", "updated_at"]
NO_DETAIL = ["id", "name", "created_at", "updated_at"]


def _base_query(table: str) -> MagicMock:
    query = MagicMock(spec=QueryBuilder)
    query.from_ = table
    query.new_query.return_value = MagicMock(spec=QueryBuilder)
    query.new_query.return_value.from_ = table
    return query


def _schema_cache(columns: list[str]) -> MagicMock:
    schema_cache = MagicMock()
    schema_cache.columns_of.return_value = tuple(columns)
    return schema_cache


@pytest.fixture
def query() -> MagicMock:
    return _base_query("test_models")


@pytest.fixture
def builder(query: MagicMock) -> DetailQueryBuilder:
    return DetailQueryBuilder(query, _schema_cache(DECLARED))


class TestWhereResolution:
    def test_dynamic_attribute_routed_into_detail(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where("status", "active")

        query.where.assert_called_once_with("detail->status", "active", UNSET, "and")

    def test_declared_column_kept(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where("id", ">", 3)

        query.where.assert_called_once_with("id", ">", 3, "and")

    def test_foreign_column_untouched(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where("post_tag.tag_id", 7)

        query.where.assert_called_once_with("post_tag.tag_id", 7, UNSET, "and")

    def test_or_where(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.or_where("priority", "<", 6)

        query.where.assert_called_once_with("detail->priority", "<", 6, "or")

    def test_detail_is_alias_of_where(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.detail("updated_at", ">", "2020-01-01")

        query.where.assert_called_once_with("updated_at", ">", "2020-01-01", "and")

    def test_expression_not_resolved(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        expression = column("raw")

        builder.where(expression, 1)

        query.where.assert_called_once_with(expression, 1, UNSET, "and")

    def test_nested_group_resolves_inside(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        nested = query.new_query.return_value

        builder.where(lambda q: q.where("status", "a").or_where("status", "b"))

        assert nested.where.call_args_list[0].args == ("detail->status", "a", UNSET, "and")
        assert nested.where.call_args_list[1].args == ("detail->status", "b", UNSET, "or")
        query.add_nested_where_query.assert_called_once_with(nested, "and")

    def test_mapping_resolves_each_key(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        nested = query.new_query.return_value

        builder.or_where({"status": "active", "id": 3})

        assert nested.where.call_args_list[0].args == ("detail->status", "=", "active", "and")
        assert nested.where.call_args_list[1].args == ("id", "=", 3, "and")
        query.add_nested_where_query.assert_called_once_with(nested, "or")
        query.where.assert_not_called()

    def test_clause_methods_chain(self, builder: DetailQueryBuilder) -> None:
        assert builder.where("status", "active").where_null("name").order_by("id") is builder


class TestOtherClauses:
    def test_where_in_and_not_in(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where_in("status", ["a"]).where_not_in("id", [1]).or_where_not_in("status", ["b"])

        assert query.where_in.call_args_list[0].args == ("detail->status", ["a"], "and", False)
        assert query.where_in.call_args_list[1].args == ("id", [1], "and", True)
        assert query.where_in.call_args_list[2].args == ("detail->status", ["b"], "or", True)

    def test_where_in_unwraps_detail_sub_query(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        inner_query = _base_query("post_tag")
        sub = DetailQueryBuilder(inner_query, _schema_cache(["id", "post_id", "tag_id"]))

        builder.where_in("id", sub)

        query.where_in.assert_called_once_with("id", inner_query, "and", False)

    def test_where_integer_in_raw(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where_integer_in_raw("rank", [1, 2]).or_where_integer_not_in_raw("id", [3])

        assert query.where_integer_in_raw.call_args_list[0].args == ("detail->rank", [1, 2], "and", False)
        assert query.where_integer_in_raw.call_args_list[1].args == ("id", [3], "or", True)

    def test_where_null_resolves_each_element(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where_null(["id", "description"])
        builder.or_where_not_null("description")

        assert query.where_null.call_args_list[0].args == (["id", "detail->description"], "and", False)
        assert query.where_null.call_args_list[1].args == ("detail->description", "or", True)

    def test_where_between_variants(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.where_between("priority", [8, 12]).or_where_not_between("id", [1, 2])

        assert query.where_between.call_args_list[0].args == ("detail->priority", [8, 12], "and", False)
        assert query.where_between.call_args_list[1].args == ("id", [1, 2], "or", True)

    def test_order_by(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.order_by("priority").order_by_desc("id")

        assert query.order_by.call_args_list[0].args == ("detail->priority", "asc")
        assert query.order_by.call_args_list[1].args == ("id", "desc")

    def test_latest_defaults_to_created_at(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.latest()

        query.order_by.assert_called_once_with("created_at", "desc")

    def test_oldest_on_dynamic_attribute(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.oldest("published_on")

        query.order_by.assert_called_once_with("detail->published_on", "asc")

    def test_group_by_flattens_and_resolves(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.group_by("status", ["id", "kind"])

        query.group_by.assert_called_once_with("detail->status", ["id", "detail->kind"])

    def test_having(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.having("score", ">", 1).or_having("id", 2)

        assert query.having.call_args_list[0].args == ("detail->score", ">", 1, "and")
        assert query.having.call_args_list[1].args == ("id", 2, UNSET, "or")


class TestPassThrough:
    def test_join_not_resolved(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.join("category_product", "categories.id", "=", "category_product.category_id")

        query.join.assert_called_once_with("category_product", "categories.id", "=", "category_product.category_id", outer=False)

    def test_left_join(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.left_join("post_tag", "tags.id", "post_tag.tag_id")

        query.join.assert_called_once_with("post_tag", "tags.id", "post_tag.tag_id", None, outer=True)

    def test_select_limit_offset(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        builder.select("name").limit(5).offset(10)

        query.select.assert_called_once_with("name")
        query.limit.assert_called_once_with(5)
        query.offset.assert_called_once_with(10)

    def test_count_and_exists_delegate(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        query.count.return_value = 4
        query.exists.return_value = True

        assert builder.count() == 4
        assert builder.exists() is True


class TestHydration:
    def test_get_without_entity_returns_flat_mappings(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        query.get.return_value = [{"id": 1, "detail": '{"status": "active"}', "created_at": None, "updated_at": None}]

        assert builder.get() == [{"id": 1, "status": "active", "created_at": None, "updated_at": None}]

    def test_get_with_entity_returns_existing_entities(self, query: MagicMock) -> None:
        query.get.return_value = [{"id": 1, "detail": '{"name": "A"}'}]
        builder = DetailQueryBuilder(query, _schema_cache(DECLARED), SampleModel)

        (record,) = builder.get()

        assert isinstance(record, SampleModel)
        assert record.exists is True
        assert record["name"] == "A"

    def test_first_without_row(self, builder: DetailQueryBuilder, query: MagicMock) -> None:
        query.first.return_value = None

        assert builder.first() is None


class TestStrictResolution:
    def test_entity_bound_raises_for_dynamic_attribute(self) -> None:
        query = _base_query("models_without_detail")
        builder = DetailQueryBuilder(query, _schema_cache(NO_DETAIL), ModelWithoutDetailColumn)

        with pytest.raises(MissingDetailColumnError) as exc_info:
            builder.where("status", "active")

        assert exc_info.value.table == "models_without_detail"
        query.where.assert_not_called()

    def test_entity_bound_declared_column_accepted(self) -> None:
        query = _base_query("models_without_detail")
        builder = DetailQueryBuilder(query, _schema_cache(NO_DETAIL), ModelWithoutDetailColumn)

        builder.where("name", "Test")

        query.where.assert_called_once_with("name", "Test", UNSET, "and")

    def test_no_entity_passes_undeclared_name_through(self) -> None:
        query = _base_query("models_without_detail")
        builder = DetailQueryBuilder(query, _schema_cache(NO_DETAIL))

        builder.where("status", "active")

        query.where.assert_called_once_with("status", "active", UNSET, "and")

    def test_nested_builder_keeps_entity(self) -> None:
        query = _base_query("models_without_detail")
        builder = DetailQueryBuilder(query, _schema_cache(NO_DETAIL), ModelWithoutDetailColumn)

        with pytest.raises(MissingDetailColumnError):
            builder.where(lambda q: q.where("status", "active"))
