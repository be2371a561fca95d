import pytest

from chocolatey_server.domain.odata_filters import parse_filter, strip_quotes

SEARCH_FILTER = (
    "(((Id ne null) and substringof('bar',tolower(Id))) or "
    "((Description ne null) and substringof('bar',tolower(Description)))) or "
    "((Tags ne null) and substringof(' bar ',tolower(Tags)))"
)


def test_exact_id_filter():
    query = parse_filter("(tolower(Id) eq 'foo') and IsLatestVersion")
    assert query.kind == "exact_id"
    assert query.term == "foo"


def test_exact_id_pattern_is_case_insensitive():
    query = parse_filter("(ToLower(ID) EQ 'foo.bar') and IsLatestVersion")
    assert query.kind == "exact_id"
    assert query.term == "foo.bar"


def test_substring_filter():
    query = parse_filter(SEARCH_FILTER)
    assert query.kind == "substring"
    assert query.term == "bar"


def test_partial_substring_filter():
    query = parse_filter("(((Id ne null) and substringof('bar',tolower(Id))) or ...)")
    assert query.kind == "substring"
    assert query.term == "bar"


@pytest.mark.parametrize(
    "expression",
    [None, "", "IsLatestVersion", "Id eq 'foo'", "startswith(Id,'foo')", "arbitrary text"],
)
def test_unrecognized_filters(expression):
    query = parse_filter(expression)
    assert query.kind == "unrecognized"
    assert query.term is None
    assert not query.recognized


@pytest.mark.parametrize(
    "raw, expected",
    [("'exact-name'", "exact-name"), ("exact-name", "exact-name"), (None, ""), ("''", "")],
)
def test_strip_quotes(raw, expected):
    assert strip_quotes(raw) == expected
