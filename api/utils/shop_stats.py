from collections import Counter
from datetime import datetime
from typing import List, Optional, Set

from schemas.shop import FilterStats, ShopStats, ShopWithDetails
from utils.shop_filters import is_open_now, shop_now
from utils.shop_helper import calculate_average_rating

def calculate_filter_stats(
    result: List[ShopWithDetails],
    all_shops: List[ShopWithDetails],
    favorite_ids: Optional[Set[int]] = None,
    now: Optional[datetime] = None,
) -> FilterStats:
    """
    篩選與排序後的統計數字；營業中的判斷每次重新計算
    """
    favorite_ids = favorite_ids or set()
    now = now or shop_now()
    return FilterStats(
        filtered_count=len(result),
        total_count=len(all_shops),
        open_count=sum(1 for shop in result if is_open_now(shop.hours, now)),
        favorite_count=sum(1 for shop in result if shop.id in favorite_ids),
    )

def calculate_shop_stats(shops: List[ShopWithDetails]) -> ShopStats:
    """整體店家統計：評論數、平均評分、類別與價格帶分布"""
    reviewed = [shop for shop in shops if shop.reviews]
    total_reviews = sum(len(shop.reviews) for shop in shops)
    average_rating = sum(calculate_average_rating(shop.reviews) for shop in reviewed) / (len(reviewed) or 1)

    return ShopStats(
        total_shops=len(shops),
        shops_with_reviews=len(reviewed),
        total_reviews=total_reviews,
        average_rating=round(average_rating, 1),
        category_stats=dict(Counter(shop.category.value for shop in shops)),
        price_range_stats=dict(Counter(shop.price_range for shop in shops)),
    )
