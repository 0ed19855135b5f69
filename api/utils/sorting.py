"""
店家排序

每個排序鍵在 asc 方向時使用自然順序（距離近、評分高、評論多、最新、店名 A→Z），
desc 將比較結果整體反轉；price_low、price_high、random 不受方向影響。
"""

import json
import logging
import time
from datetime import timezone
from typing import List, Optional, Tuple

from config import SORT_STATE_STORAGE_KEY
from schemas.filters import SortOption, SortDirection, SortState
from schemas.shop import ShopWithDetails
from utils.local_store import KeyValueStore
from utils.shop_helper import calculate_average_rating, natural_name_key

logger = logging.getLogger(__name__)

# 隨機排序用的種子，重設前維持相同順序
_random_seed = int(time.time() * 1000)

# 不受排序方向影響的選項
DIRECTION_FIXED_OPTIONS = {SortOption.PRICE_LOW, SortOption.PRICE_HIGH, SortOption.RANDOM}

SORT_DESCRIPTIONS = {
    SortOption.RATING: "評分高到低",
    SortOption.DISTANCE: "距離目前位置由近到遠",
    SortOption.REVIEW_COUNT: "評論數多到少",
    SortOption.NEWEST: "最新登錄",
    SortOption.PRICE_LOW: "價格由低到高",
    SortOption.PRICE_HIGH: "價格由高到低",
    SortOption.NAME: "店名排序",
    SortOption.RANDOM: "隨機順序",
}

def reset_random_sort() -> None:
    """產生新的隨機種子"""
    global _random_seed
    _random_seed = int(time.time() * 1000)

def _created_timestamp(shop: ShopWithDetails) -> float:
    if shop.created_at is None:
        return 0
    created = shop.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()

def _random_rank(shop: ShopWithDetails) -> int:
    return (shop.id * _random_seed) % 1000000

def _name_key(shop: ShopWithDetails) -> tuple:
    # 自然排序相同時（大小寫、前導零）再依原店名與 ID 決定，反向時才會完全倒序
    return (natural_name_key(shop.name), shop.name, shop.id)

def _sort_key(shop: ShopWithDetails, option: SortOption, has_location: bool) -> tuple:
    """
    回傳自然順序的排序鍵，最後一項為店名作為同分時的次序
    """
    name_key = _name_key(shop)

    if option == SortOption.RATING:
        # 評分相同時評論數多者優先
        return (-calculate_average_rating(shop.reviews), -len(shop.reviews), name_key)
    if option == SortOption.REVIEW_COUNT:
        return (-len(shop.reviews), -calculate_average_rating(shop.reviews), name_key)
    if option == SortOption.NEWEST:
        return (-_created_timestamp(shop), name_key)
    if option == SortOption.PRICE_LOW:
        return (shop.price_range, name_key)
    if option == SortOption.PRICE_HIGH:
        return (-shop.price_range, name_key)
    if option == SortOption.DISTANCE:
        if not has_location:
            return (name_key,)
        return (shop.distance, name_key)
    if option == SortOption.RANDOM:
        return (_random_rank(shop), name_key)
    return (name_key,)

def sort_shops(
    shops: List[ShopWithDetails],
    sort_state: SortState,
    current_location: Optional[Tuple[float, float]] = None,
) -> List[ShopWithDetails]:
    """
    回傳排序後的新清單，不修改輸入

    Args:
        shops: 已篩選的店家
        sort_state: 排序選項與方向
        current_location: 目前位置，距離排序需要
    """
    if not shops:
        return []

    option = sort_state.option
    has_location = current_location is not None
    reverse = sort_state.direction == SortDirection.DESC and option not in DIRECTION_FIXED_OPTIONS

    # 沒有距離資料的店家不論方向都排在最後
    if option == SortOption.DISTANCE and has_location:
        with_distance = [shop for shop in shops if shop.distance is not None]
        without_distance = [shop for shop in shops if shop.distance is None]
        ordered = sorted(with_distance, key=lambda s: _sort_key(s, option, True), reverse=reverse)
        ordered.extend(sorted(without_distance, key=_name_key, reverse=reverse))
        return ordered

    return sorted(shops, key=lambda s: _sort_key(s, option, has_location), reverse=reverse)

def get_sort_description(sort_state: SortState, has_location: bool) -> str:
    if sort_state.option == SortOption.DISTANCE and not has_location:
        description = "距離排序（需要位置資訊）"
    else:
        description = SORT_DESCRIPTIONS.get(sort_state.option, "預設排序")

    if sort_state.direction == SortDirection.DESC and sort_state.option not in DIRECTION_FIXED_OPTIONS:
        description += "（反向）"
    return description

def is_sort_option_available(option: SortOption, has_location: bool) -> bool:
    if option == SortOption.DISTANCE:
        return has_location
    return True

# 排序狀態保存在裝置儲存
def save_sort_state(store: KeyValueStore, sort_state: SortState) -> None:
    try:
        store.set(SORT_STATE_STORAGE_KEY, sort_state.model_dump_json())
    except Exception as e:
        logger.error(f"保存排序狀態失敗: {str(e)}")

def load_sort_state(store: KeyValueStore) -> SortState:
    try:
        saved = store.get(SORT_STATE_STORAGE_KEY)
        if saved:
            return SortState(**json.loads(saved))
    except Exception as e:
        logger.error(f"讀取排序狀態失敗: {str(e)}")
    return SortState()
