from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum

from config import (
    MAX_SHOP_NAME_LENGTH,
    MAX_ADDRESS_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_PHONE_LENGTH,
    MAX_WEBSITE_LENGTH,
    MAX_TAGS_PER_SHOP,
    MAX_TAG_LENGTH,
)
from utils.validation import sanitize_input, is_valid_url, is_valid_phone, is_valid_time

class ShopCategory(str, Enum):
    CAFE = "cafe"
    ROASTERY = "roastery"
    CHAIN = "chain"
    SPECIALTY = "specialty"
    BAKERY = "bakery"

PAYMENT_METHODS = ["cash", "credit", "qr-code", "ic-card"]

class ShopHoursBase(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)  # 0=星期日
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_closed: bool = False

    @field_validator("open_time", "close_time")
    @classmethod
    def check_time_format(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        # 資料庫可能回傳 HH:MM:SS
        value = value[:5]
        if not is_valid_time(value):
            raise ValueError("時間格式必須為 HH:MM")
        return value

class ShopHours(ShopHoursBase):
    id: Optional[int] = None
    shop_id: Optional[int] = None

    class Config:
        from_attributes = True

class ShopImage(BaseModel):
    id: Optional[int] = None
    shop_id: int
    image_url: str
    is_main: bool = False
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

class ShopTag(BaseModel):
    id: Optional[int] = None
    shop_id: int
    tag: str

class Review(BaseModel):
    id: Optional[int] = None
    shop_id: int
    user_id: Optional[str] = None
    reviewer_name: str = "Coffee Lover"
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    created_at: Optional[datetime] = None

class ShopBase(BaseModel):
    name: str
    address: str
    description: Optional[str] = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    category: ShopCategory = ShopCategory.CAFE
    price_range: int = Field(2, ge=1, le=4)
    phone: Optional[str] = None
    website: Optional[str] = None
    has_wifi: bool = False
    has_power: bool = False
    main_image_url: Optional[str] = None
    payment_methods: List[str] = Field(default_factory=list)

class ShopCreate(ShopBase):
    """新增店家表單，所有欄位在送出時一次驗證與清理"""
    payment_methods: List[str] = Field(default_factory=lambda: ["cash"])
    tags: List[str] = Field(default_factory=list)
    hours: List[ShopHoursBase] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("店名為必填")
        if len(value) > MAX_SHOP_NAME_LENGTH:
            raise ValueError(f"店名不可超過 {MAX_SHOP_NAME_LENGTH} 字")
        return sanitize_input(value, MAX_SHOP_NAME_LENGTH)

    @field_validator("address")
    @classmethod
    def check_address(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("地址為必填")
        if len(value) > MAX_ADDRESS_LENGTH:
            raise ValueError(f"地址不可超過 {MAX_ADDRESS_LENGTH} 字")
        return sanitize_input(value, MAX_ADDRESS_LENGTH)

    @field_validator("description")
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if len(value) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"說明不可超過 {MAX_DESCRIPTION_LENGTH} 字")
        return sanitize_input(value, MAX_DESCRIPTION_LENGTH) or None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not is_valid_phone(value):
            raise ValueError("請輸入有效的電話號碼")
        return sanitize_input(value, MAX_PHONE_LENGTH)

    @field_validator("website")
    @classmethod
    def check_website(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if len(value) > MAX_WEBSITE_LENGTH or not is_valid_url(value):
            raise ValueError("請輸入有效的網址")
        return value

    @field_validator("payment_methods")
    @classmethod
    def check_payment_methods(cls, value: List[str]) -> List[str]:
        unknown = [m for m in value if m not in PAYMENT_METHODS]
        if unknown:
            raise ValueError(f"不支援的付款方式: {', '.join(unknown)}")
        return list(dict.fromkeys(value))

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: List[str]) -> List[str]:
        if len(value) > MAX_TAGS_PER_SHOP:
            raise ValueError(f"標籤最多 {MAX_TAGS_PER_SHOP} 個")
        tags = []
        for tag in value:
            cleaned = sanitize_input(tag, MAX_TAG_LENGTH).lower()
            if cleaned and cleaned not in tags:
                tags.append(cleaned)
        return tags

    @model_validator(mode="after")
    def check_hours(self):
        days = [entry.day_of_week for entry in self.hours]
        if len(days) != len(set(days)):
            raise ValueError("每個星期幾只能有一筆營業時間")
        return self

class Shop(ShopBase):
    id: int
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    class Config:
        from_attributes = True

class ShopWithDetails(Shop):
    images: List[ShopImage] = Field(default_factory=list)
    hours: List[ShopHours] = Field(default_factory=list)
    tags: List[ShopTag] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)
    distance: Optional[float] = None  # 公里
    is_favorite: bool = False

class ShopCreateResponse(BaseModel):
    shop: Shop
    tags: List[str] = []
    remaining_creations: Optional[int] = None

class ShopImageResponse(BaseModel):
    image: ShopImage
    urls: Dict[str, str]

class FilterStats(BaseModel):
    filtered_count: int
    total_count: int
    open_count: int
    favorite_count: int

class ShopStats(BaseModel):
    total_shops: int
    shops_with_reviews: int
    total_reviews: int
    average_rating: float
    category_stats: Dict[str, int]
    price_range_stats: Dict[int, int]

class ShopListResponse(BaseModel):
    shops: List[ShopWithDetails]
    stats: FilterStats
    sort_description: str
    active_filter_count: int = 0

class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=MAX_ADDRESS_LENGTH)

class GeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
