"""Tests for the URL query-parameter filter dialect."""
from urllib.parse import quote

import pytest
from hypothesis import given
from hypothesis import strategies as st

from schemas.filter import FilterCondition, QueryFilterItem
from services.exceptions import FilterBadInputError, FilterErrorKind
from services.filter_query_parser import (
    RESERVED_KEYS,
    QueryParser,
    decode_component,
    parse_condition_value,
    split_query,
)


@pytest.fixture
def parser() -> QueryParser:
    """Parser with the universal `eq` default."""
    return QueryParser()


def _items(parser: QueryParser, query: str) -> list[QueryFilterItem]:
    return parser.parse(query).filters


# =============================================================================
# Key syntax
# =============================================================================


class TestQueryParserKeys:
    """Tests for key parsing."""

    def test__parse__bare_key_defaults_to_eq(self, parser: QueryParser) -> None:
        """`name=value` uses the eq condition."""
        assert _items(parser, "name=test") == [
            QueryFilterItem("name", FilterCondition.EQ, "test"),
        ]

    def test__parse__explicit_condition(self, parser: QueryParser) -> None:
        """`name[cond]=value` uses the bracketed condition."""
        assert _items(parser, "age[gt]=25") == [
            QueryFilterItem("age", FilterCondition.GT, "25"),
        ]

    def test__parse__condition_token_is_case_insensitive(self, parser: QueryParser) -> None:
        """Condition tokens are lowercased before lookup."""
        assert _items(parser, "age[GTE]=25")[0].condition == FilterCondition.GTE

    def test__parse__unknown_condition_is_bad_input(self, parser: QueryParser) -> None:
        """Unknown tokens fail with a message naming the token."""
        with pytest.raises(FilterBadInputError) as exc_info:
            parser.parse("name[invalid]=test")

        assert exc_info.value.kind == FilterErrorKind.BAD_INPUT
        assert "invalid" in exc_info.value.message
        assert '"name"' in exc_info.value.message

    def test__parse__internal_condition_name_is_bad_input(self, parser: QueryParser) -> None:
        """Internal-only condition names are not public tokens."""
        with pytest.raises(FilterBadInputError):
            parser.parse("due_date[exists]=true")

    def test__parse__empty_key_is_bad_input(self, parser: QueryParser) -> None:
        """A parameter with no name fails."""
        with pytest.raises(FilterBadInputError, match="empty property name"):
            parser.parse("=value")

    def test__parse__brackets_without_property_name_are_a_literal_key(
        self, parser: QueryParser,
    ) -> None:
        """`[eq]=x` is a filter on the property literally named "[eq]"."""
        assert _items(parser, "[eq]=test") == [
            QueryFilterItem("[eq]", FilterCondition.EQ, "test"),
        ]

    def test__parse__missing_closing_bracket_is_a_literal_key(self, parser: QueryParser) -> None:
        """`name[eq=x` is the property "name[eq" with the default condition."""
        assert _items(parser, "name[eq=test") == [
            QueryFilterItem("name[eq", FilterCondition.EQ, "test"),
        ]

    def test__parse__extra_bracket_stays_in_property_name(self, parser: QueryParser) -> None:
        """`name][eq]=x` is the property "name]" with eq."""
        assert _items(parser, "name][eq]=test") == [
            QueryFilterItem("name]", FilterCondition.EQ, "test"),
        ]

    def test__parse__trailing_newline_is_a_literal_key(self, parser: QueryParser) -> None:
        """A newline after the closing bracket keeps the whole key literal."""
        assert _items(parser, "name%5Beq%5D%0A=x") == [
            QueryFilterItem("name[eq]\n", FilterCondition.EQ, "x"),
        ]

    def test__parse__newline_in_property_name_is_a_literal_key(self, parser: QueryParser) -> None:
        """Property names never span lines."""
        assert _items(parser, "na%0Ame%5Beq%5D=x")[0].property_key == "na\nme[eq]"

    def test__parse__non_ascii_condition_is_a_literal_key(self, parser: QueryParser) -> None:
        """Condition tokens are ASCII word characters only."""
        assert _items(parser, "name%5B%C3%A9%5D=x") == [
            QueryFilterItem("name[\u00e9]", FilterCondition.EQ, "x"),
        ]

    def test__parse__special_characters_in_key(self, parser: QueryParser) -> None:
        """Dots, dashes and underscores are part of the property name."""
        assert _items(parser, "custom.property_name-123[eq]=value")[0].property_key == (
            "custom.property_name-123"
        )

    def test__parse__default_condition_override(self) -> None:
        """Per-property defaults apply only to bare keys of that property."""
        parser = QueryParser(default_conditions={"name": FilterCondition.CONTAINS})

        assert _items(parser, "name=test&status=active&name[eq]=x") == [
            QueryFilterItem("name", FilterCondition.CONTAINS, "test"),
            QueryFilterItem("status", FilterCondition.EQ, "active"),
            QueryFilterItem("name", FilterCondition.EQ, "x"),
        ]


# =============================================================================
# Reserved keys
# =============================================================================


class TestQueryParserReservedKeys:
    """Tests for non-filter parameters."""

    def test__parse__pagination_and_sort_params_are_ignored(self, parser: QueryParser) -> None:
        """offset, limit, sort and order never become filters."""
        assert _items(parser, "name=test&offset=10&limit=20&sort=name&order=asc") == [
            QueryFilterItem("name", FilterCondition.EQ, "test"),
        ]

    def test__parse__extra_reserved_keys(self) -> None:
        """Endpoints can reserve more keys."""
        parser = QueryParser(reserved_keys=["include"])

        assert _items(parser, "include=all&name=x") == [
            QueryFilterItem("name", FilterCondition.EQ, "x"),
        ]

    def test__parse__only_reserved_keys_yields_no_filters(self, parser: QueryParser) -> None:
        """A query with only reserved keys has no filters."""
        assert _items(parser, "offset=0&limit=10") == []

    @given(
        st.lists(
            st.tuples(
                st.sampled_from(sorted(RESERVED_KEYS))
                | st.from_regex(r"[a-z][a-z0-9_]{0,10}", fullmatch=True),
                st.from_regex(r"[a-zA-Z0-9 ,]{0,10}", fullmatch=True),
            ),
            max_size=8,
        ),
    )
    def test__parse__reserved_keys_never_become_filters(
        self, pairs: list[tuple[str, str]],
    ) -> None:
        """No reserved key ever appears as a filter property."""
        query = "&".join(f"{quote(k)}={quote(v)}" for k, v in pairs)

        result = QueryParser().parse(query)

        assert not {f.property_key for f in result.filters} & RESERVED_KEYS
        assert len(result.filters) == sum(1 for k, _ in pairs if k not in RESERVED_KEYS)


# =============================================================================
# Values
# =============================================================================


class TestQueryParserValues:
    """Tests for value decoding and shaping."""

    def test__parse__url_encoded_value_is_decoded_once(self, parser: QueryParser) -> None:
        """Percent escapes and `+` are decoded exactly once."""
        assert _items(parser, "title=hello%20world&description[contains]=a+b%2525") == [
            QueryFilterItem("title", FilterCondition.EQ, "hello world"),
            QueryFilterItem("description", FilterCondition.CONTAINS, "a b%25"),
        ]

    def test__parse__special_characters_in_value(self, parser: QueryParser) -> None:
        """Encoded reserved characters survive."""
        assert _items(parser, "description[contains]=%26%3D%2B%40%23")[0].value == "&=+@#"

    def test__parse__malformed_escape_is_bad_input(self, parser: QueryParser) -> None:
        """A `%` not followed by two hex digits fails."""
        with pytest.raises(FilterBadInputError, match="malformed escape"):
            parser.parse("name=100%zz")

    def test__parse__invalid_utf8_is_bad_input(self, parser: QueryParser) -> None:
        """Escapes that decode to invalid UTF-8 fail."""
        with pytest.raises(FilterBadInputError, match="invalid UTF-8"):
            parser.parse("name=%ff%fe")

    def test__parse__empty_value_is_allowed(self, parser: QueryParser) -> None:
        """`name=` filters on the empty string."""
        assert _items(parser, "name=")[0].value == ""

    def test__parse__in_condition_splits_on_commas(self, parser: QueryParser) -> None:
        """Set conditions take a comma-separated list."""
        assert _items(parser, "tags[in]=todo,done,pending")[0].value == [
            "todo", "done", "pending",
        ]

    def test__parse__in_condition_single_value_is_a_list(self, parser: QueryParser) -> None:
        """A single value is still a list for set conditions."""
        assert _items(parser, "tags[in]=todo")[0].value == ["todo"]

    def test__parse__set_condition_elements_are_trimmed(self, parser: QueryParser) -> None:
        """Whitespace around elements is removed; inner whitespace stays."""
        assert _items(parser, "tags[in]=to do, in progress ,done")[0].value == [
            "to do", "in progress", "done",
        ]

    def test__parse__empty_set_value_is_empty_list(self, parser: QueryParser) -> None:
        """`tags[in]=` is an empty list."""
        assert _items(parser, "tags[in]=")[0].value == []

    def test__parse__non_set_condition_keeps_commas(self, parser: QueryParser) -> None:
        """Other conditions take the value verbatim."""
        assert _items(parser, "priority[gt]=5,10,15")[0].value == "5,10,15"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("1", True), ("", True), ("TRUE", True), (" true ", True),
         ("false", False), ("0", False), ("yes", False)],
    )
    def test__parse__empty_conditions_take_a_flag(
        self, parser: QueryParser, raw: str, expected: bool,
    ) -> None:
        """empty/nempty values are truthiness flags."""
        assert _items(parser, f"description[empty]={quote(raw)}")[0].value is expected
        assert _items(parser, f"description[nempty]={quote(raw)}")[0].value is expected

    @given(
        st.lists(
            st.from_regex(r"[a-zA-Z0-9_-]{1,8}", fullmatch=True), min_size=1, max_size=6,
        ),
        st.sampled_from(["in", "nin", "all"]),
        st.sampled_from(["", " ", "  "]),
    )
    def test__parse__set_values_are_trimmed_lists(
        self, elements: list[str], token: str, padding: str,
    ) -> None:
        """`a, b ,c` and `a,b,c` parse to the same list."""
        raw = ",".join(f"{padding}{e}{padding}" for e in elements)

        result = QueryParser().parse(f"tags[{token}]={quote(raw)}")

        assert result.filters[0].value == elements

    def test__parse__multiple_parameters_keep_order(self, parser: QueryParser) -> None:
        """Filters come out in query order, duplicates included."""
        items = _items(parser, "name=test&status[ne]=archived&priority[in]=5,10&name=again")

        assert [(i.property_key, i.condition) for i in items] == [
            ("name", FilterCondition.EQ),
            ("status", FilterCondition.NE),
            ("priority", FilterCondition.IN),
            ("name", FilterCondition.EQ),
        ]


# =============================================================================
# Helpers and inputs
# =============================================================================


def test__parse__accepts_raw_pairs() -> None:
    """Undecoded (key, value) pairs are decoded like a query string."""
    result = QueryParser().parse([("name%5Bcontains%5D", "a%20b"), ("limit", "5")])

    assert result.filters == [QueryFilterItem("name", FilterCondition.CONTAINS, "a b")]


def test__split_query__skips_empty_segments() -> None:
    """Stray `&` and a leading `?` are ignored; a key without `=` has an empty value."""
    assert split_query("?a=1&&b&c=x=y") == [("a", "1"), ("b", ""), ("c", "x=y")]


def test__decode_component__plus_is_space() -> None:
    """`+` decodes to a space."""
    assert decode_component("a+b%2B") == "a b+"


def test__parse_condition_value__equal_keeps_string() -> None:
    """Non-set, non-empty conditions keep the raw string."""
    assert parse_condition_value(FilterCondition.EQ, " x ") == " x "
