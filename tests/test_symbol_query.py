import pytest

from rlsindex.symbol_query import IndexedValue, SymbolIndex, SymbolQuery

STARS = [
    "agena", "agreetor", "algerib", "anektor", "antares", "arcturus", "canopus", "capella",
    "duendin", "golubin", "lalandry", "spica", "vega",
]


def check(query, expected):
    index = SymbolIndex.from_items((s, i) for i, s in enumerate(STARS))
    actual = query.search([index], lambda acc, iv: acc.append(STARS[iv.value]))
    assert actual == expected


def test_automaton():
    check(SymbolQuery.prefix("an"), ["anektor", "antares"])
    check(
        SymbolQuery.subsequence("an"),
        ["agena", "anektor", "antares", "canopus", "lalandry"],
    )
    check(SymbolQuery.subsequence("an").limit(2), ["agena", "anektor"])
    check(
        SymbolQuery.subsequence("an").limit(2).greater_than("anektor"),
        ["antares", "canopus"],
    )
    check(SymbolQuery.subsequence("an").limit(2).greater_than("canopus"), ["lalandry"])


def test_query_is_lowercased():
    check(SymbolQuery.prefix("AN"), ["anektor", "antares"])
    assert SymbolQuery.subsequence("AbC").query_string == "abc"
    assert SymbolQuery.prefix("x").greater_than("ANEKTOR").lower_bound == "anektor"


def test_empty_query_matches_everything():
    check(SymbolQuery.prefix(""), STARS)


def test_matches():
    assert SymbolQuery.prefix("ca").matches("canopus")
    assert not SymbolQuery.prefix("ca").matches("arcturus")
    assert SymbolQuery.subsequence("ca").matches("arcturus") is False
    assert SymbolQuery.subsequence("cp").matches("capella")
    assert not SymbolQuery.prefix("canopusx").matches("canopus")


def test_non_ascii_query_does_not_match_ascii_name():
    assert not SymbolQuery.prefix("mäin").matches("main")
    assert SymbolQuery.prefix("mä").matches("mäin")


def test_unsorted_items_rejected():
    with pytest.raises(ValueError):
        SymbolIndex.from_items([("b", 0), ("a", 1)])
    with pytest.raises(ValueError):
        SymbolIndex.from_items([("a", 0), ("a", 1)])


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        SymbolQuery.prefix("a").limit(-1)


def test_index_access():
    index = SymbolIndex.from_items([("a", 3), ("b", 7)])
    assert index.keys() == ["a", "b"]
    assert index.get("b") == 7
    assert index.get("c") is None
    assert len(index) == 2


def test_stream_unions_several_indexes():
    first = SymbolIndex.from_items([("alpha", 0), ("beta", 1)])
    second = SymbolIndex.from_items([("alpha", 5), ("gamma", 6)])
    result = list(SymbolQuery.prefix("").stream([first, second]))
    assert [key for key, _ in result] == ["alpha", "beta", "gamma"]
    assert result[0][1] == [IndexedValue(0, 0), IndexedValue(1, 5)]
    assert result[2][1] == [IndexedValue(1, 6)]