from datetime import datetime

import pytz

from schemas.filters import FilterState, OpenAtFilter, DistanceFilter
from utils.shop_filters import apply_filters, is_open_at, is_open_now, day_of_week
from utils.shop_stats import calculate_filter_stats
from factories import make_shop

TOKYO = pytz.timezone("Asia/Tokyo")
# 2024-06-03 是星期一
MONDAY_10AM = TOKYO.localize(datetime(2024, 6, 3, 10, 0))
MONDAY_6PM = TOKYO.localize(datetime(2024, 6, 3, 18, 0))

WEEKDAY_HOURS = [
    {"day_of_week": 1, "open_time": "09:00", "close_time": "18:00"},
    {"day_of_week": 0, "is_closed": True},
]


def _ids(shops):
    return [shop.id for shop in shops]


def _sample_shops():
    return [
        make_shop(1, "Blue Bottle", category="cafe", price_range=2, has_wifi=True,
                  ratings=[5, 4], hours=WEEKDAY_HOURS, tags=["latte", "quiet"],
                  payment_methods=["cash", "credit"]),
        make_shop(2, "Roast Works", category="roastery", price_range=4, has_power=True,
                  description="自家焙煎の豆", payment_methods=["cash"]),
        make_shop(3, "Wifi Power Cafe", category="cafe", price_range=1, has_wifi=True, has_power=True,
                  ratings=[3], tags=["Work"], payment_methods=["qr-code"]),
    ]


def test_day_of_week_starts_on_sunday():
    assert day_of_week(MONDAY_10AM) == 1
    assert day_of_week(TOKYO.localize(datetime(2024, 6, 2, 12, 0))) == 0


def test_default_filters_keep_every_shop():
    shops = _sample_shops()
    result = apply_filters(shops, FilterState(), now=MONDAY_10AM)
    assert _ids(result) == [1, 2, 3]


def test_empty_list_gives_empty_result():
    assert apply_filters([], FilterState(search="latte"), now=MONDAY_10AM) == []


def test_search_is_case_insensitive_over_name_address_and_description():
    shops = _sample_shops()
    assert _ids(apply_filters(shops, FilterState(search="BLUE"), now=MONDAY_10AM)) == [1]
    assert _ids(apply_filters(shops, FilterState(search="焙煎"), now=MONDAY_10AM)) == [2]
    assert _ids(apply_filters(shops, FilterState(search="千代田区 3"), now=MONDAY_10AM)) == [3]


def test_category_and_price_range():
    shops = _sample_shops()
    assert _ids(apply_filters(shops, FilterState(category="cafe"), now=MONDAY_10AM)) == [1, 3]
    assert _ids(apply_filters(shops, FilterState(price_range="4"), now=MONDAY_10AM)) == [2]


def test_features_require_every_selected_flag():
    shops = _sample_shops()
    assert _ids(apply_filters(shops, FilterState(features=["wifi"]), now=MONDAY_10AM)) == [1, 3]
    assert _ids(apply_filters(shops, FilterState(features=["wifi", "power"]), now=MONDAY_10AM)) == [3]


def test_favorites_only():
    shops = _sample_shops()
    result = apply_filters(shops, FilterState(show_favorites_only=True), favorite_ids={2, 3}, now=MONDAY_10AM)
    assert _ids(result) == [2, 3]


def test_open_now_uses_half_open_interval():
    hours = make_shop(1, "A", hours=WEEKDAY_HOURS).hours
    assert is_open_now(hours, MONDAY_10AM)
    assert not is_open_now(hours, MONDAY_6PM)
    assert is_open_at(hours, 1, "09:00")
    assert not is_open_at(hours, 1, "08:59")


def test_open_now_fails_without_entry_or_times():
    assert not is_open_now([], MONDAY_10AM)
    missing_times = make_shop(1, "A", hours=[{"day_of_week": 1, "open_time": "09:00"}]).hours
    assert not is_open_now(missing_times, MONDAY_10AM)


def test_closed_day_is_excluded_by_open_now():
    sunday_noon = TOKYO.localize(datetime(2024, 6, 2, 12, 0))
    shops = [
        make_shop(1, "Closed Sunday", has_wifi=True, ratings=[5], hours=[
            {"day_of_week": 0, "open_time": "00:00", "close_time": "23:59", "is_closed": True},
        ]),
    ]
    assert apply_filters(shops, FilterState(is_open_now=True), now=sunday_noon) == []


def test_open_at_specific_time():
    shops = _sample_shops()
    filters = FilterState(open_at=OpenAtFilter(enabled=True, day=1, time="17:30"))
    assert _ids(apply_filters(shops, filters, now=MONDAY_10AM)) == [1]


def test_distance_needs_a_known_location():
    shops = [
        make_shop(1, "Near", distance=0.5),
        make_shop(2, "Far", distance=12.0),
        make_shop(3, "Unknown"),
    ]
    filters = FilterState(distance=DistanceFilter(enabled=True, max_km=5))
    assert _ids(apply_filters(shops, filters, current_location=(35.68, 139.76), now=MONDAY_10AM)) == [1]
    assert _ids(apply_filters(shops, filters, current_location=None, now=MONDAY_10AM)) == [1, 2, 3]


def test_min_rating_excludes_shops_without_reviews():
    shops = _sample_shops()
    result = apply_filters(shops, FilterState(min_rating=0.5), now=MONDAY_10AM)
    assert 2 not in _ids(result)
    assert _ids(apply_filters(shops, FilterState(min_rating=4.5), now=MONDAY_10AM)) == [1]


def test_has_reviews():
    shops = _sample_shops()
    assert _ids(apply_filters(shops, FilterState(has_reviews=True), now=MONDAY_10AM)) == [1, 3]


def test_tags_and_payment_methods_match_any():
    shops = _sample_shops()
    assert _ids(apply_filters(shops, FilterState(tags=["work", "quiet"]), now=MONDAY_10AM)) == [1, 3]
    assert _ids(apply_filters(shops, FilterState(payment_methods=["credit", "qr-code"]), now=MONDAY_10AM)) == [1, 3]


def test_criteria_combine_with_and():
    shops = _sample_shops()
    filters = FilterState(category="cafe", features=["power"], min_rating=3)
    assert _ids(apply_filters(shops, filters, now=MONDAY_10AM)) == [3]


def test_filtering_does_not_modify_input():
    shops = _sample_shops()
    apply_filters(shops, FilterState(category="roastery"), now=MONDAY_10AM)
    assert _ids(shops) == [1, 2, 3]


def test_active_filter_count():
    assert FilterState().active_filter_count() == 0
    filters = FilterState(
        search="latte",
        category="cafe",
        features=["wifi", "power"],
        tags=["quiet"],
        distance=DistanceFilter(enabled=True),
    )
    assert filters.active_filter_count() == 6


def test_cafe_with_wifi_scenario():
    shops = [
        make_shop(1, "Shop One", category="cafe", price_range=2, has_wifi=True, ratings=[5]),
        make_shop(2, "Shop Two", category="roastery", price_range=4, has_wifi=False),
    ]
    result = apply_filters(shops, FilterState(category="cafe", features=["wifi"]), now=MONDAY_10AM)
    assert _ids(result) == [1]

    stats = calculate_filter_stats(result, shops, now=MONDAY_10AM)
    assert stats.filtered_count == 1
    assert stats.total_count == 2
