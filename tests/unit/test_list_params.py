"""
Tests for list query parameter parsing.
"""

from __future__ import annotations

import pytest

from coredata_rest.runtime.pagination import (
    MAX_PAGE_SIZE,
    PageParams,
    RequestParameterError,
    SliceParams,
    parse_list_params,
)
from coredata_rest.runtime.sa_schema import MAX_SQL_INT


class TestPageStyle:
    def test_page_and_per_page(self):
        params = parse_list_params({"page": "3", "per_page": "20"})

        assert isinstance(params, PageParams)
        assert params.page == 3
        assert params.per_page == 20
        assert params.offset == 40

    def test_page_alone_defaults_per_page(self):
        params = parse_list_params({"page": "2"})
        assert params.per_page == MAX_PAGE_SIZE
        assert params.offset == MAX_PAGE_SIZE

    def test_per_page_alone_defaults_page(self):
        params = parse_list_params({"per_page": "10"})
        assert isinstance(params, PageParams)
        assert params.page == 1
        assert params.offset == 0

    def test_page_style_wins_over_slice_style(self):
        params = parse_list_params({"page": "1", "limit": "5"})
        assert isinstance(params, PageParams)

    @pytest.mark.parametrize(
        "query,bad",
        [
            ({"per_page": "0"}, "per_page"),
            ({"per_page": "101"}, "per_page"),
            ({"page": "0"}, "page"),
            ({"page": "first"}, "page"),
        ],
    )
    def test_out_of_range_is_request_error(self, query, bad):
        with pytest.raises(RequestParameterError) as exc_info:
            parse_list_params(query)
        assert bad in exc_info.value.errors


class TestSliceStyle:
    def test_defaults(self):
        params = parse_list_params({})

        assert isinstance(params, SliceParams)
        assert params.limit == MAX_PAGE_SIZE
        assert params.offset == 0

    def test_limit_and_offset(self):
        params = parse_list_params({"limit": "5", "offset": "10"})
        assert (params.limit, params.offset) == (5, 10)

    def test_other_parameters_ignored(self):
        params = parse_list_params({"sort": "name"})
        assert isinstance(params, SliceParams)

    @pytest.mark.parametrize(
        "query,bad",
        [
            ({"limit": "0"}, "limit"),
            ({"limit": "1000"}, "limit"),
            ({"offset": "-1"}, "offset"),
            ({"offset": "x"}, "offset"),
        ],
    )
    def test_invalid_values(self, query, bad):
        with pytest.raises(RequestParameterError) as exc_info:
            parse_list_params(query)
        assert bad in exc_info.value.errors


class TestSqlIntegerRange:
    def test_huge_page(self):
        with pytest.raises(RequestParameterError) as exc_info:
            parse_list_params({"page": str(10**20)})
        assert "page" in exc_info.value.errors

    def test_page_whose_offset_overflows(self):
        with pytest.raises(RequestParameterError) as exc_info:
            parse_list_params({"page": str(MAX_SQL_INT), "per_page": "100"})
        assert "page" in exc_info.value.errors

    def test_largest_usable_offset(self):
        params = parse_list_params({"offset": str(MAX_SQL_INT)})
        assert params.offset == MAX_SQL_INT

    def test_huge_offset(self):
        with pytest.raises(RequestParameterError) as exc_info:
            parse_list_params({"offset": str(10**20)})
        assert "offset" in exc_info.value.errors
