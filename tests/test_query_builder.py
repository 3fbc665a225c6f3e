"""
Tests for SQL generation from query descriptors
"""

import re

import pytest

from query import DatabaseQuery, Operation, Predicate, QueryBuildError, QueryBuilder
from query.filters import build_predicate, quote_identifier


def placeholders(sql: str) -> set:
    return set(re.findall(r"\$(\d+)", sql))


@pytest.fixture
def builder():
    return QueryBuilder()


class TestPredicates:
    """Single predicate fragments"""

    @pytest.mark.parametrize("operator,sql_op", [
        ("eq", "="), ("neq", "!="), ("gt", ">"), ("gte", ">="), ("lt", "<"), ("lte", "<="),
    ])
    def test_comparison_operators(self, operator, sql_op):
        params = []
        fragment = build_predicate(Predicate("miles_traveled", operator, 10), params)
        assert fragment == f'"miles_traveled" {sql_op} $1'
        assert params == [10]

    def test_like_never_emits_ilike(self):
        params = []
        fragment = build_predicate(Predicate("title", "like", "%Loch%"), params)
        assert "LIKE $1" in fragment
        assert "ILIKE" not in fragment
        assert params == ["%Loch%"]

    def test_ilike(self):
        params = []
        assert build_predicate(Predicate("title", "ilike", "%loch%"), params) == '"title" ILIKE $1'

    def test_pattern_requires_string(self):
        with pytest.raises(QueryBuildError):
            build_predicate(Predicate("title", "like", 5), [])

    def test_in_binds_one_array_parameter(self):
        params = []
        fragment = build_predicate(Predicate("mood", "in", ["happy", "tired"]), params)
        assert fragment == '"mood" = ANY($1)'
        assert params == [["happy", "tired"]]

    def test_in_rejects_plain_string(self):
        with pytest.raises(QueryBuildError):
            build_predicate(Predicate("mood", "in", "happy"), [])

    @pytest.mark.parametrize("value,keyword", [(None, "NULL"), (True, "TRUE"), (False, "FALSE")])
    def test_is_emits_keywords_without_params(self, value, keyword):
        params = []
        assert build_predicate(Predicate("dog_friendly", "is", value), params) == f'"dog_friendly" IS {keyword}'
        assert params == []

    def test_is_rejects_other_values(self):
        with pytest.raises(QueryBuildError):
            build_predicate(Predicate("dog_friendly", "is", "NULL; DROP TABLE x"), [])

    def test_unknown_operator(self):
        with pytest.raises(QueryBuildError, match="Unknown operator"):
            build_predicate(Predicate("title", "contains", "x"), [])

    @pytest.mark.parametrize("name", ["title; DROP TABLE journal_entries", "1abc", "a-b", "", None, 'x"y'])
    def test_rejects_unsafe_identifiers(self, name):
        with pytest.raises(QueryBuildError):
            quote_identifier(name)


class TestSelect:

    def test_plain_select(self, builder):
        sql, params = builder.build(DatabaseQuery("journal_entries"))
        assert sql == 'SELECT * FROM "journal_entries"'
        assert params == []

    def test_projection_is_quoted(self, builder):
        sql, _ = builder.build(DatabaseQuery("journal_entries", columns="id, title"))
        assert sql == 'SELECT "id", "title" FROM "journal_entries"'

    def test_full_chain(self, builder):
        query = (
            DatabaseQuery("journal_entries")
            .eq("mood", "happy")
            .ilike("title", "%castle%")
            .gte("miles_traveled", 5)
            .order("date", ascending=False)
            .range(2, 5)
        )
        sql, params = builder.build(query)

        assert sql == (
            'SELECT * FROM "journal_entries" '
            'WHERE "mood" = $1 AND "title" ILIKE $2 AND "miles_traveled" >= $3 '
            'ORDER BY "date" DESC LIMIT $4 OFFSET $5'
        )
        assert params == ["happy", "%castle%", 5, 4, 2]

    def test_placeholder_count_matches_params(self, builder):
        query = (
            DatabaseQuery("journal_entries")
            .eq("mood", "happy")
            .neq("weather", "rain")
            .in_("location", ["Oban", "Skye"])
            .is_("parking", None)
            .like("title", "%Loch%")
            .limit(10)
        )
        sql, params = builder.build(query)
        assert len(placeholders(sql)) == len(params) == 5

    def test_range_2_5(self, builder):
        sql, params = builder.build(DatabaseQuery("journal_entries").range(2, 5))
        assert sql.endswith("LIMIT $1 OFFSET $2")
        assert params == [4, 2]

    def test_repeated_filters_accumulate(self, builder):
        query = DatabaseQuery("journal_entries").gte("date", "2024-01-01").lte("date", "2024-12-31")
        sql, params = builder.build(query)
        assert 'WHERE "date" >= $1 AND "date" <= $2' in sql
        assert params == ["2024-01-01", "2024-12-31"]

    def test_count_ignores_order_and_pagination(self, builder):
        query = (
            DatabaseQuery("journal_entries")
            .eq("mood", "happy")
            .order("date")
            .limit(10)
            .select("*", count="exact")
        )
        sql, params = builder.build(query)
        assert sql == 'SELECT COUNT(*) AS count FROM "journal_entries" WHERE "mood" = $1'
        assert params == ["happy"]


class TestWrites:

    def test_single_insert(self, builder):
        query = DatabaseQuery("journal_comments", Operation.INSERT, payload={
            "journal_entry_id": "e1", "author_name": "Morag", "comment_text": "Braw!",
        })
        sql, params = builder.build(query)
        assert sql == (
            'INSERT INTO "journal_comments" ("journal_entry_id", "author_name", "comment_text") '
            'VALUES ($1, $2, $3) RETURNING *'
        )
        assert params == ["e1", "Morag", "Braw!"]

    def test_multi_insert_uses_first_record_columns(self, builder):
        records = [
            {"stat_type": "a", "display_name": "A"},
            {"display_name": "B", "stat_type": "b"},
        ]
        sql, params = builder.build(DatabaseQuery("adventure_stats", Operation.INSERT, payload=records))
        assert '("stat_type", "display_name")' in sql
        assert "VALUES ($1, $2), ($3, $4)" in sql
        assert params == ["a", "A", "b", "B"]

    def test_multi_insert_rejects_mismatched_keys(self, builder):
        records = [{"stat_type": "a"}, {"stat_type": "b", "icon": "x"}]
        with pytest.raises(QueryBuildError, match="different columns"):
            builder.build(DatabaseQuery("adventure_stats", Operation.INSERT, payload=records))

    def test_insert_rejects_empty_list(self, builder):
        with pytest.raises(QueryBuildError):
            builder.build(DatabaseQuery("adventure_stats", Operation.INSERT, payload=[]))

    def test_update(self, builder):
        query = DatabaseQuery("journal_entries", Operation.UPDATE, payload={"mood": "tired", "weather": "dreich"})
        sql, params = builder.build(query.eq("id", "e1"))
        assert sql == (
            'UPDATE "journal_entries" SET "mood" = $1, "weather" = $2 WHERE "id" = $3 RETURNING *'
        )
        assert params == ["tired", "dreich", "e1"]

    def test_update_without_filter_is_rejected(self, builder):
        query = DatabaseQuery("journal_entries", Operation.UPDATE, payload={"mood": "tired"})
        with pytest.raises(QueryBuildError, match="at least one filter"):
            builder.build(query)

    def test_delete(self, builder):
        sql, params = builder.build(DatabaseQuery("journal_likes", Operation.DELETE).eq("id", "l1"))
        assert sql == 'DELETE FROM "journal_likes" WHERE "id" = $1 RETURNING *'
        assert params == ["l1"]

    def test_delete_without_filter_is_rejected(self, builder):
        with pytest.raises(QueryBuildError):
            builder.build(DatabaseQuery("journal_likes", Operation.DELETE))


class TestRpc:

    def test_named_arguments(self, builder):
        sql, values = builder.build_rpc("increment_adventure_stat", {"p_stat_type": "photos_taken", "p_increment": 2})
        assert sql == 'SELECT * FROM "increment_adventure_stat"("p_stat_type" => $1, "p_increment" => $2)'
        assert values == ["photos_taken", 2]

    def test_no_arguments(self, builder):
        sql, values = builder.build_rpc("refresh_stats")
        assert sql == 'SELECT * FROM "refresh_stats"()'
        assert values == []

    def test_rejects_unsafe_function_name(self, builder):
        with pytest.raises(QueryBuildError):
            builder.build_rpc("pg_sleep(10); --", {})
