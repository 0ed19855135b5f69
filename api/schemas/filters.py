from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum

from utils.validation import is_valid_time

class SortOption(str, Enum):
    DISTANCE = "distance"          # 距離近到遠
    RATING = "rating"              # 評分高到低
    REVIEW_COUNT = "review_count"  # 評論數多到少
    NEWEST = "newest"              # 最新登錄
    PRICE_LOW = "price_low"        # 價格低到高
    PRICE_HIGH = "price_high"      # 價格高到低
    NAME = "name"                  # 店名
    RANDOM = "random"              # 隨機

class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

class SortState(BaseModel):
    option: SortOption = SortOption.DISTANCE
    direction: SortDirection = SortDirection.ASC

class OpenAtFilter(BaseModel):
    enabled: bool = False
    day: int = Field(0, ge=0, le=6)
    time: str = "09:00"

    @field_validator("time")
    @classmethod
    def check_time(cls, value: str) -> str:
        if not is_valid_time(value):
            raise ValueError("時間格式必須為 HH:MM")
        return value

class DistanceFilter(BaseModel):
    enabled: bool = False
    max_km: float = Field(5, gt=0)

class FilterState(BaseModel):
    """篩選條件，只存在於單次瀏覽階段，不寫入資料庫"""
    search: str = ""
    category: str = "all"
    price_range: str = "all"
    features: List[str] = Field(default_factory=list)
    show_favorites_only: bool = False
    is_open_now: bool = False
    open_at: OpenAtFilter = Field(default_factory=OpenAtFilter)
    has_reviews: bool = False
    min_rating: float = Field(0, ge=0, le=5)
    distance: DistanceFilter = Field(default_factory=DistanceFilter)
    tags: List[str] = Field(default_factory=list)
    payment_methods: List[str] = Field(default_factory=list)

    def active_filter_count(self) -> int:
        """計算目前生效的篩選條件數量，多選條件每個選項各算一個"""
        count = 0
        if self.search:
            count += 1
        if self.category != "all":
            count += 1
        if self.price_range != "all":
            count += 1
        count += len(self.features)
        if self.show_favorites_only:
            count += 1
        if self.is_open_now:
            count += 1
        if self.open_at.enabled:
            count += 1
        if self.has_reviews:
            count += 1
        if self.min_rating > 0:
            count += 1
        if self.distance.enabled:
            count += 1
        count += len(self.tags)
        count += len(self.payment_methods)
        return count

class ShopSearchRequest(BaseModel):
    filters: FilterState = Field(default_factory=FilterState)
    sort: SortState = Field(default_factory=SortState)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
