"""Tests for search_query.py"""

from qiita_viewer.core.search_query import build_search_query


def test_keyword_only():
    assert build_search_query("react", "", "", "") == "react"


def test_user_and_created_from():
    assert build_search_query("", "alice", "2023-01-01", "") == "user:alice created:>=2023-01-01"


def test_all_empty_is_no_filter():
    assert build_search_query("", "", "", "") == ""
    assert build_search_query() == ""


def test_fixed_order():
    result = build_search_query("python", "bob", "2023-01-01", "2023-12-31")
    assert result == "python user:bob created:>=2023-01-01 created:<=2023-12-31"


def test_parts_are_trimmed():
    result = build_search_query("  react hooks ", " alice ", " 2023-01-01", "2023-02-01 ")
    assert result == "react hooks user:alice created:>=2023-01-01 created:<=2023-02-01"


def test_whitespace_only_parts_are_dropped():
    assert build_search_query("   ", "\t", " ", "2023-02-01") == "created:<=2023-02-01"


def test_none_parts_are_treated_as_empty():
    assert build_search_query(None, "alice", None, None) == "user:alice"
