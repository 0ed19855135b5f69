from datetime import datetime, timedelta, timezone

from schemas.filters import SortOption, SortDirection, SortState
from utils.sorting import (
    sort_shops,
    get_sort_description,
    is_sort_option_available,
    save_sort_state,
    load_sort_state,
    reset_random_sort,
)
from factories import make_shop

BASE_TIME = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _ids(shops):
    return [shop.id for shop in shops]


def _shops():
    return [
        make_shop(1, "Cafe 10", ratings=[4, 4], price_range=3, distance=2.5, created_at=BASE_TIME),
        make_shop(2, "cafe 2", ratings=[5], price_range=1, distance=0.8, created_at=BASE_TIME + timedelta(days=2)),
        make_shop(3, "Beans", ratings=[], price_range=2, distance=None, created_at=BASE_TIME + timedelta(days=1)),
        make_shop(4, "Aroma", ratings=[5, 5, 3], price_range=4, distance=1.2, created_at=BASE_TIME - timedelta(days=1)),
    ]


def _sort(option, direction=SortDirection.ASC, location=(35.68, 139.76)):
    return _ids(sort_shops(_shops(), SortState(option=option, direction=direction), location))


def test_empty_list():
    assert sort_shops([], SortState()) == []


def test_distance_nearest_first_and_unknown_last():
    assert _sort(SortOption.DISTANCE) == [2, 4, 1, 3]
    assert _sort(SortOption.DISTANCE, SortDirection.DESC) == [1, 4, 2, 3]


def test_distance_without_location_falls_back_to_name():
    assert _sort(SortOption.DISTANCE, location=None) == [4, 3, 2, 1]


def test_rating_highest_first():
    # 平均評分: 2=5.0, 4=4.33, 1=4.0, 3=0
    assert _sort(SortOption.RATING) == [2, 4, 1, 3]
    assert _sort(SortOption.RATING, SortDirection.DESC) == [3, 1, 4, 2]


def test_review_count_most_first():
    assert _sort(SortOption.REVIEW_COUNT) == [4, 1, 2, 3]


def test_newest_most_recent_first():
    assert _sort(SortOption.NEWEST) == [2, 3, 1, 4]


def test_price_options_ignore_direction():
    assert _sort(SortOption.PRICE_LOW) == [2, 3, 1, 4]
    assert _sort(SortOption.PRICE_LOW, SortDirection.DESC) == [2, 3, 1, 4]
    assert _sort(SortOption.PRICE_HIGH) == [4, 1, 3, 2]
    assert _sort(SortOption.PRICE_HIGH, SortDirection.DESC) == [4, 1, 3, 2]


def test_name_uses_natural_order():
    assert _sort(SortOption.NAME) == [4, 3, 2, 1]


def test_name_desc_is_exact_reverse_of_asc():
    asc = _sort(SortOption.NAME)
    desc = _sort(SortOption.NAME, SortDirection.DESC)
    assert desc == list(reversed(asc))


def test_name_ties_by_case_and_leading_zero_reverse_exactly():
    shops = [
        make_shop(1, "cafe"),
        make_shop(2, "Cafe"),
        make_shop(3, "Cafe 01"),
        make_shop(4, "Cafe 1"),
    ]
    asc = _ids(sort_shops(shops, SortState(option=SortOption.NAME, direction=SortDirection.ASC)))
    desc = _ids(sort_shops(shops, SortState(option=SortOption.NAME, direction=SortDirection.DESC)))

    assert asc == [2, 1, 3, 4]
    assert desc == [4, 3, 1, 2]

    # 輸入順序不影響結果
    reordered = _ids(sort_shops(list(reversed(shops)), SortState(option=SortOption.NAME, direction=SortDirection.DESC)))
    assert reordered == desc


def test_random_is_stable_until_reset():
    reset_random_sort()
    first = _sort(SortOption.RANDOM)
    assert _sort(SortOption.RANDOM) == first
    assert _sort(SortOption.RANDOM, SortDirection.DESC) == first
    assert sorted(first) == [1, 2, 3, 4]


def test_sorting_does_not_modify_input():
    shops = _shops()
    sort_shops(shops, SortState(option=SortOption.NAME))
    assert _ids(shops) == [1, 2, 3, 4]


def test_sort_description():
    assert get_sort_description(SortState(option=SortOption.RATING), True) == "評分高到低"
    assert get_sort_description(SortState(option=SortOption.DISTANCE), False) == "距離排序（需要位置資訊）"
    assert get_sort_description(
        SortState(option=SortOption.NAME, direction=SortDirection.DESC), True
    ) == "店名排序（反向）"
    assert get_sort_description(
        SortState(option=SortOption.PRICE_LOW, direction=SortDirection.DESC), True
    ) == "價格由低到高"


def test_distance_option_needs_location():
    assert not is_sort_option_available(SortOption.DISTANCE, False)
    assert is_sort_option_available(SortOption.DISTANCE, True)
    assert is_sort_option_available(SortOption.RATING, False)


def test_sort_state_persists_in_store(store):
    assert load_sort_state(store) == SortState()

    state = SortState(option=SortOption.REVIEW_COUNT, direction=SortDirection.DESC)
    save_sort_state(store, state)
    assert load_sort_state(store) == state


def test_corrupted_sort_state_falls_back_to_default(store):
    store.set("coffee-map-sort-state", "{not json")
    assert load_sort_state(store) == SortState()
