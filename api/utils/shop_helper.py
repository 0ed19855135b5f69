import re
import unicodedata
from math import radians, cos, sin, asin, sqrt
from typing import Iterable, Optional, Tuple

from schemas.shop import Review

EARTH_RADIUS_KM = 6371

# 計算兩點之間的大圓距離
def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    以 haversine 公式計算兩個經緯度之間的距離（單位：公里）
    """
    d_lat = radians(lat2 - lat1)
    d_lon = radians(lon2 - lon1)
    lat1 = radians(lat1)
    lat2 = radians(lat2)

    a = sin(d_lat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(d_lon / 2) ** 2
    c = 2 * asin(sqrt(a))
    return EARTH_RADIUS_KM * c

def distance_from(location: Optional[Tuple[float, float]], latitude: float, longitude: float) -> Optional[float]:
    if location is None:
        return None
    return calculate_distance(location[0], location[1], latitude, longitude)

# 平均評分，沒有評論時為 0
def calculate_average_rating(reviews: Iterable[Review]) -> float:
    ratings = [review.rating or 0 for review in reviews or []]
    if not ratings:
        return 0
    return sum(ratings) / len(ratings)

# 處理店名用於排序與比較
def normalize_shop_name(name: str) -> str:
    """
    將店名標準化：NFKC 處理全形半形差異，並轉為不分大小寫的形式
    """
    if not name:
        return ""
    name = unicodedata.normalize("NFKC", name)
    return name.strip().casefold()

def natural_name_key(name: str) -> tuple:
    """
    店名的自然排序鍵，數字部分以數值比較（例如 "Cafe 2" 排在 "Cafe 10" 前面）
    """
    parts = re.split(r"(\d+)", normalize_shop_name(name))
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in parts if part != "")
