"""
店家篩選

所有條件以 AND 組合；多選條件中，設備需全部符合，標籤與付款方式只需符合其一。
"""

from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple

import pytz

from config import SHOP_TIMEZONE
from schemas.filters import FilterState
from schemas.shop import ShopHours, ShopWithDetails
from utils.shop_helper import calculate_average_rating

FEATURE_FLAGS = {
    "wifi": "has_wifi",
    "power": "has_power",
}

def shop_now() -> datetime:
    """店家所在時區的目前時間"""
    return datetime.now(pytz.timezone(SHOP_TIMEZONE))

def day_of_week(moment: datetime) -> int:
    """0=星期日 ... 6=星期六"""
    return (moment.weekday() + 1) % 7

def is_open_at(hours: Optional[Iterable[ShopHours]], day: int, time_text: str) -> bool:
    """
    檢查指定星期幾與 HH:MM 時間是否在營業時間內，區間為 [open_time, close_time)
    """
    if not hours:
        return False
    entry = next((h for h in hours if h.day_of_week == day), None)
    if entry is None or entry.is_closed:
        return False
    if not entry.open_time or not entry.close_time:
        return False
    return entry.open_time <= time_text < entry.close_time

def is_open_now(hours: Optional[Iterable[ShopHours]], now: Optional[datetime] = None) -> bool:
    now = now or shop_now()
    return is_open_at(hours, day_of_week(now), now.strftime("%H:%M"))

def matches_search(shop: ShopWithDetails, search: str) -> bool:
    if not search:
        return True
    needle = search.lower()
    return (
        needle in shop.name.lower()
        or needle in shop.address.lower()
        or needle in (shop.description or "").lower()
    )

def matches_features(shop: ShopWithDetails, features: List[str]) -> bool:
    for feature in features:
        attribute = FEATURE_FLAGS.get(feature)
        if attribute is None or not getattr(shop, attribute, False):
            return False
    return True

def matches_tags(shop: ShopWithDetails, tags: List[str]) -> bool:
    if not tags:
        return True
    shop_tags = {tag.tag.lower() for tag in shop.tags}
    return any(tag.lower() in shop_tags for tag in tags)

def matches_payment_methods(shop: ShopWithDetails, methods: List[str]) -> bool:
    if not methods:
        return True
    accepted = set(shop.payment_methods or [])
    return any(method in accepted for method in methods)

def shop_matches(
    shop: ShopWithDetails,
    filters: FilterState,
    favorite_ids: Set[int],
    current_location: Optional[Tuple[float, float]],
    now: datetime,
) -> bool:
    # 搜尋關鍵字
    if not matches_search(shop, filters.search):
        return False

    # 類別
    if filters.category != "all" and shop.category.value != filters.category:
        return False

    # 價格帶，以字串比較
    if filters.price_range != "all" and str(shop.price_range) != filters.price_range:
        return False

    # 設備
    if not matches_features(shop, filters.features):
        return False

    # 只顯示收藏
    if filters.show_favorites_only and shop.id not in favorite_ids:
        return False

    # 目前營業中
    if filters.is_open_now and not is_open_now(shop.hours, now):
        return False

    # 指定時間營業
    if filters.open_at.enabled and not is_open_at(shop.hours, filters.open_at.day, filters.open_at.time):
        return False

    # 距離
    if filters.distance.enabled and current_location is not None:
        if shop.distance is None or shop.distance > filters.distance.max_km:
            return False

    # 有評論
    if filters.has_reviews and not shop.reviews:
        return False

    # 最低評分
    if filters.min_rating > 0 and calculate_average_rating(shop.reviews) < filters.min_rating:
        return False

    if not matches_tags(shop, filters.tags):
        return False

    if not matches_payment_methods(shop, filters.payment_methods):
        return False

    return True

def apply_filters(
    shops: List[ShopWithDetails],
    filters: FilterState,
    favorite_ids: Optional[Set[int]] = None,
    current_location: Optional[Tuple[float, float]] = None,
    now: Optional[datetime] = None,
) -> List[ShopWithDetails]:
    """
    回傳符合所有篩選條件的店家，不修改輸入清單

    Args:
        shops: 完整店家清單
        filters: 篩選條件
        favorite_ids: 目前使用者或裝置的收藏店家 ID
        current_location: 目前位置 (緯度, 經度)
        now: 判斷營業中所用的時間，預設為店家時區的現在時間
    """
    favorite_ids = favorite_ids or set()
    now = now or shop_now()
    return [
        shop for shop in shops
        if shop_matches(shop, filters, favorite_ids, current_location, now)
    ]
