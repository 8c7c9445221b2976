"""
Tests for parameterized SQL fragment construction
"""

import re

import pytest

from core.exceptions import ConfigurationError
from db.query_builder import (
    Exact,
    Exists,
    In,
    Like,
    Range,
    build_batch_insert,
    build_in_clause,
    build_order_by,
    build_pagination_clause,
    build_set_clause,
    build_where_clause,
    escape_like,
    is_valid_field,
    is_valid_operator,
    renumber_placeholders,
    require_operator,
)


class TestIdentifierValidation:
    """Field names and operators are whitelisted before interpolation"""

    @pytest.mark.parametrize("name", ["title", "r.title", "_private", "recipe_ingredients"])
    def test_valid_fields(self, name):
        assert is_valid_field(name)

    @pytest.mark.parametrize(
        "name", ["", "1abc", "title; DROP TABLE recipes", "a.b.c", "ti tle", None, 42, "id\n", "r.title\n"]
    )
    def test_invalid_fields(self, name):
        assert not is_valid_field(name)

    def test_operator_case_insensitive(self):
        assert is_valid_operator("ilike")
        assert require_operator("not in") == "NOT IN"

    def test_unknown_operator_rejected(self):
        assert not is_valid_operator("; --")
        with pytest.raises(ConfigurationError):
            require_operator("~*")


class TestEscapeLike:
    def test_escapes_wildcards(self):
        assert escape_like("50%_off") == "50\\%\\_off"

    def test_backslash_escaped_first(self):
        assert escape_like("a\\%") == "a\\\\\\%"

    def test_plain_text_unchanged(self):
        assert escape_like("chicken") == "chicken"


class TestWhereClause:
    """Test WHERE construction and placeholder numbering"""

    def test_no_conditions_has_no_where(self):
        where = build_where_clause([])
        assert where.clause == ""
        assert where.params == []
        assert where.next_index == 1

    def test_none_values_are_skipped(self):
        where = build_where_clause([Exact("category_id", None), None, Like("title", None), In("id", None)])
        assert where.clause == ""

    def test_mixed_conditions_number_sequentially(self):
        where = build_where_clause(
            [
                Exact("r.category_id", 3),
                Like("r.title", "soup"),
                In("r.id", [7, 8]),
                Range("r.preparation_time", 10, 30),
            ]
        )
        assert where.clause == (
            "WHERE r.category_id = $1 AND r.title ILIKE $2 AND r.id IN ($3, $4) "
            "AND r.preparation_time BETWEEN $5 AND $6"
        )
        assert where.params == [3, "%soup%", 7, 8, 10, 30]
        assert where.next_index == 7

    def test_start_index_offsets_placeholders(self):
        where = build_where_clause([Exact("id", 5)], start_index=4)
        assert where.clause == "WHERE id = $4"
        assert where.next_index == 5

    def test_like_value_is_escaped_and_wrapped(self):
        where = build_where_clause([Like("name", "100%")])
        assert where.params == ["%100\\%%"]

    def test_range_single_bounds(self):
        assert build_where_clause([Range("x", min=1)]).clause == "WHERE x >= $1"
        assert build_where_clause([Range("x", max=9)]).clause == "WHERE x <= $1"

    def test_range_without_bounds_rejected(self):
        with pytest.raises(ConfigurationError):
            build_where_clause([Range("x")])

    def test_not_in(self):
        where = build_where_clause([In("fodmap_level", ["HIGH"], negate=True)])
        assert where.clause == "WHERE fodmap_level NOT IN ($1)"

    def test_empty_in_rejected(self):
        with pytest.raises(ConfigurationError):
            build_where_clause([In("id", [])])

    def test_exact_rejects_in_operator(self):
        with pytest.raises(ConfigurationError):
            build_where_clause([Exact("id", [1, 2], operator="IN")])

    def test_invalid_field_rejected(self):
        with pytest.raises(ConfigurationError):
            build_where_clause([Exact("id = 1 OR 1", 1)])

    def test_exists_placeholders_renumbered(self):
        where = build_where_clause(
            [
                Exact("r.category_id", 2),
                Exists("SELECT 1 WHERE r.title ILIKE $1 OR r.description ILIKE $2", ["%a%", "%a%"]),
            ]
        )
        assert where.clause == (
            "WHERE r.category_id = $1 AND "
            "EXISTS (SELECT 1 WHERE r.title ILIKE $2 OR r.description ILIKE $3)"
        )
        assert where.params == [2, "%a%", "%a%"]
        assert where.next_index == 4

    def test_not_exists(self):
        where = build_where_clause([Exists("SELECT 1 FROM t WHERE t.level IN ($1)", ["HIGH"], negate=True)])
        assert where.clause.startswith("WHERE NOT EXISTS (")


class TestPlaceholderContiguity:
    """Placeholders in a clause always match its parameter list"""

    @pytest.mark.parametrize("start_index", [1, 3, 10])
    @pytest.mark.parametrize(
        "conditions",
        [
            [Exact("a", 1)],
            [In("a", [1, 2, 3]), Like("b", "x")],
            [Range("a", 1, 2), Exists("SELECT 1 WHERE x = $1 AND y = $2", [5, 6]), Exact("c", None)],
            [Exists("SELECT 1 WHERE x IN ($1, $2, $3)", ["p", "q", "r"], negate=True), Range("d", max=4)],
        ],
    )
    def test_indices_contiguous(self, conditions, start_index):
        where = build_where_clause(conditions, start_index=start_index)
        indices = [int(n) for n in re.findall(r"\$(\d+)", where.clause)]
        assert sorted(indices) == list(range(start_index, start_index + len(where.params)))
        assert where.next_index == start_index + len(where.params)


class TestRenumberPlaceholders:
    def test_double_digit_placeholders(self):
        subquery = " ".join(f"${i}" for i in range(1, 12))
        assert renumber_placeholders(subquery, 11, 10).split()[-1] == "$21"

    def test_mismatched_params_rejected(self):
        with pytest.raises(ConfigurationError):
            renumber_placeholders("SELECT $1, $3", 2, 0)


class TestOtherClauses:
    def test_in_clause(self):
        assert build_in_clause(["a", "b"], 3) == ("$3, $4", ["a", "b"], 5)

    def test_order_by(self):
        assert build_order_by([("r.created_at", "desc"), ("r.id", "bogus")]) == (
            "ORDER BY r.created_at DESC, r.id ASC"
        )
        assert build_order_by([]) == ""

    def test_pagination(self):
        assert build_pagination_clause(10, 20, 3) == ("LIMIT $3 OFFSET $4", [10, 20], 5)

    def test_set_clause(self):
        assert build_set_clause({"title": "New", "serving_size": 4}) == (
            "title = $1, serving_size = $2",
            ["New", 4],
            3,
        )


class TestBatchInsert:
    """Multi-row INSERT with row/column numbered placeholders"""

    def test_placeholders_follow_row_and_column(self):
        sql, params = build_batch_insert(
            "recipe_ingredients", ["recipe_id", "ingredient_id", "quantity"], [(1, 4, 2.5), (1, 5, 100)]
        )
        assert sql == (
            "INSERT INTO recipe_ingredients (recipe_id, ingredient_id, quantity) "
            "VALUES ($1, $2, $3), ($4, $5, $6)"
        )
        assert params == [1, 4, 2.5, 1, 5, 100]

    def test_returning(self):
        sql, _ = build_batch_insert("tags", ["name"], [["quick"]], returning="id, name")
        assert sql.endswith("RETURNING id, name")

    def test_ragged_rows_rejected(self):
        with pytest.raises(ConfigurationError):
            build_batch_insert("recipe_tags", ["recipe_id", "tag_id"], [(1, 2), (1,)])

    def test_empty_rows_rejected(self):
        with pytest.raises(ConfigurationError):
            build_batch_insert("recipe_tags", ["recipe_id", "tag_id"], [])

    def test_invalid_column_rejected(self):
        with pytest.raises(ConfigurationError):
            build_batch_insert("tags", ["name) VALUES ('x'); --"], [["y"]])
