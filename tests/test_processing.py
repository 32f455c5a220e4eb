"""Tests for the record pipeline and grouping helpers."""

from __future__ import annotations

import pandas as pd
import pytest

from rail_core.filters import DateRange, FilterOptions
from rail_core.processing import (
    filter_records,
    format_date,
    format_delay_time,
    format_time,
    generate_chart_data,
    generate_daily_delay_data,
    generate_delay_distribution,
    generate_hourly_delay_data,
    generate_monthly_stats,
    generate_route_delay_data,
    generate_route_detail_data,
    get_delay_badge_class,
    get_delay_category,
    get_route_train_number,
    get_unique_routes,
    get_unique_train_numbers,
    paginate_records,
    process_records,
    search_mask,
    sort_records,
    total_pages,
)


# ---------------- filtering ----------------
def test_filter_by_inclusive_date_range(records_df: pd.DataFrame) -> None:
    out = filter_records(records_df, FilterOptions(date_range=DateRange("2024-01-15", "2024-01-16")))
    assert sorted(out["id"].tolist()) == [1, 2, 3, 4]


def test_filter_with_open_ended_date_range(records_df: pd.DataFrame) -> None:
    out = filter_records(records_df, FilterOptions(date_range=DateRange(start="2024-02-01")))
    assert sorted(out["id"].tolist()) == [5, 6]


def test_filter_by_train_numbers(records_df: pd.DataFrame) -> None:
    out = filter_records(records_df, FilterOptions(train_numbers=["202"]))
    assert sorted(out["id"].tolist()) == [3, 6]


def test_filter_routes_match_by_substring(records_df: pd.DataFrame) -> None:
    out = filter_records(records_df, FilterOptions(routes=["Kyiv"]))
    assert sorted(out["id"].tolist()) == [1, 2, 3, 4, 6]


def test_filter_delay_bounds_are_inclusive(records_df: pd.DataFrame) -> None:
    out = filter_records(records_df, FilterOptions(min_delay=20, max_delay=90))
    assert sorted(out["delay_minutes"].tolist()) == [20, 45, 90]


def test_filter_search_query_is_case_insensitive(records_df: pd.DataFrame) -> None:
    out = filter_records(records_df, FilterOptions(search_query="  LVIV "))
    assert sorted(out["id"].tolist()) == [1, 2, 4, 5]


def test_search_mask_scopes(records_df: pd.DataFrame) -> None:
    assert search_mask(records_df, "kyiv", "trains").sum() == 0
    assert search_mask(records_df, "kyiv", "routes").sum() == 5
    assert search_mask(records_df, "303", "all").sum() == 1
    assert search_mask(records_df, "", "all").all()


# ---------------- sorting / pagination ----------------
def test_sort_records_numeric_desc(records_df: pd.DataFrame) -> None:
    out = sort_records(records_df, FilterOptions(sort_by="delay_minutes", sort_direction="desc"))
    assert out["delay_minutes"].tolist() == [200, 90, 45, 20, 10, 5.5]


def test_sort_records_string_asc(records_df: pd.DataFrame) -> None:
    out = sort_records(records_df, FilterOptions(sort_by="timestamp"))
    assert out["id"].tolist() == [1, 2, 3, 4, 6, 5]


def test_sort_records_without_sort_key_is_noop(records_df: pd.DataFrame) -> None:
    assert sort_records(records_df, FilterOptions()) is records_df


def test_paginate_records(records_df: pd.DataFrame) -> None:
    page = paginate_records(records_df, FilterOptions(page=2, page_size=4))
    assert page["id"].tolist() == [5, 6]
    assert len(paginate_records(records_df, FilterOptions(page=2))) == 6


def test_process_records_filters_sorts_and_pages(records_df: pd.DataFrame) -> None:
    options = FilterOptions(routes=["Kyiv"], sort_by="timestamp", sort_direction="desc", page=1, page_size=2)
    out = process_records(records_df, options)
    assert out["id"].tolist() == [6, 4]


def test_total_pages() -> None:
    assert total_pages(6, 4) == 2
    assert total_pages(0, 25) == 0
    assert total_pages(5, None) == 1


# ---------------- groupings ----------------
def test_daily_chart_data_sums_and_averages_per_day(records_df: pd.DataFrame) -> None:
    data = generate_chart_data(records_df)
    assert [d["date"] for d in data] == ["2024-01-15", "2024-01-16", "2024-02-03"]
    assert data[0] == {"date": "2024-01-15", "average_delay": 25.0, "total_trains": 3, "max_delay": 45.0}
    assert data[2]["average_delay"] == 47.8


def test_hourly_data_has_24_buckets(records_df: pd.DataFrame) -> None:
    data = generate_hourly_delay_data(records_df)
    assert [d["hour"] for d in data] == list(range(24))
    assert data[8] == {"hour": 8, "average_delay": 105.0, "total_records": 2}
    assert data[0] == {"hour": 0, "average_delay": 0.0, "total_records": 0}


def test_day_of_week_data_has_named_buckets(records_df: pd.DataFrame) -> None:
    data = generate_daily_delay_data(records_df)
    assert [d["day_name"] for d in data][:2] == ["Monday", "Tuesday"]
    assert len(data) == 7
    assert data[0]["total_records"] == 3
    assert data[5]["average_delay"] == 47.8
    assert data[6]["total_records"] == 0


def test_empty_frame_groupings() -> None:
    empty = pd.DataFrame(columns=["date", "hour", "day_of_week", "route", "train_number", "delay_minutes"])
    assert generate_chart_data(empty) == []
    assert len(generate_hourly_delay_data(empty)) == 24
    assert all(d["total_records"] == 0 for d in generate_daily_delay_data(empty))
    assert generate_route_delay_data(empty) == []
    assert [d["percentage"] for d in generate_delay_distribution(empty)] == [0, 0, 0, 0]


def test_route_delay_data_sorted_by_average(records_df: pd.DataFrame) -> None:
    data = generate_route_delay_data(records_df)
    assert [d["route"] for d in data] == ["Lviv - Odesa", "Kyiv - Lviv", "Odesa - Kyiv"]
    assert data[1]["average_delay"] == 76.7
    assert data[1]["total_records"] == 3
    assert data[1]["max_delay"] == 200
    assert len(generate_route_delay_data(records_df, limit=1)) == 1


@pytest.mark.parametrize(
    ("minutes", "category"),
    [(0, "low"), (15, "low"), (15.04, "low"), (15.05, "medium"), (60, "medium"), (61, "high"), (180, "high"), (181, "extreme")],
)
def test_delay_category_boundaries(minutes: float, category: str) -> None:
    assert get_delay_category(minutes) == category


def test_delay_distribution(records_df: pd.DataFrame) -> None:
    dist = generate_delay_distribution(records_df)
    assert [d["category"] for d in dist] == ["low", "medium", "high", "extreme"]
    assert [d["count"] for d in dist] == [2, 2, 1, 1]
    assert [d["percentage"] for d in dist] == [33.3, 33.3, 16.7, 16.7]
    assert dist[0]["range"] == "0-15 min"


def test_unique_values_are_sorted(records_df: pd.DataFrame) -> None:
    assert get_unique_train_numbers(records_df) == ["101", "202", "303"]
    assert get_unique_routes(records_df) == ["Kyiv - Lviv", "Lviv - Odesa", "Odesa - Kyiv"]


def test_route_train_number_is_most_common(records_df: pd.DataFrame) -> None:
    extra = pd.concat([records_df, records_df.head(1).assign(train_number="999")], ignore_index=True)
    assert get_route_train_number(extra, "Kyiv - Lviv") == "101"
    assert get_route_train_number(records_df, "Nowhere") == ""


def test_monthly_stats_are_chronological(records_df: pd.DataFrame) -> None:
    stats = generate_monthly_stats(records_df)
    assert [s["month_year"] for s in stats] == ["Jan 2024", "Feb 2024"]
    assert stats[0]["average_delay"] == 68.8
    assert stats[0]["total_incidents"] == 4
    assert stats[1]["max_delay"] == 90


def test_route_detail_data(records_df: pd.DataFrame) -> None:
    detail = generate_route_detail_data(records_df, "Kyiv - Lviv")
    assert detail["total_records"] == 3
    assert detail["average_delay"] == 76.7
    assert (detail["min_delay"], detail["max_delay"]) == (10, 200)
    assert len(detail["records"]) == 3
    assert detail["monthly_stats"][0]["month_year"] == "Jan 2024"
    assert len(detail["daily_stats"]) == 7


def test_route_detail_for_unknown_route(records_df: pd.DataFrame) -> None:
    detail = generate_route_detail_data(records_df, "Nowhere")
    assert detail["total_records"] == 0
    assert detail["records"] == [] and detail["monthly_stats"] == []


# ---------------- formatting ----------------
@pytest.mark.parametrize(
    ("minutes", "text"),
    [(45, "45m"), (5.5, "5.5m"), (90, "1h 30m"), (120, "2h 0m"), (61.75, "1h 1.75m"), (200, "3h 20m")],
)
def test_format_delay_time(minutes: float, text: str) -> None:
    assert format_delay_time(minutes) == text


def test_format_date_and_time() -> None:
    assert format_date("2024-01-15") == "Jan 15, 2024"
    assert format_time("14:35:00") == "14:35"


def test_delay_badge_class() -> None:
    assert get_delay_badge_class(5) == "delay-badge delay-low"
    assert get_delay_badge_class(30) == "delay-badge delay-medium"
    assert get_delay_badge_class(100) == "delay-badge delay-high"
    assert get_delay_badge_class(500) == "delay-badge delay-high"


def test_sort_records_strings_ignore_case(records_df: pd.DataFrame) -> None:
    mixed = records_df.assign(origin=["kyiv", "Kyiv", "odesa", "Kyiv", "Lviv", "Odesa"])
    out = sort_records(mixed, FilterOptions(sort_by="origin"))
    assert out["id"].tolist() == [1, 2, 4, 5, 3, 6]


@pytest.mark.parametrize(("minutes", "text"), [(-5, "-5m"), (-90, "-1h 30m"), (-0.5, "-0.5m")])
def test_format_delay_time_early_arrivals(minutes: float, text: str) -> None:
    assert format_delay_time(minutes) == text
