from datetime import datetime, date
from typing import Optional, List

# 店家模型
class Shop:
    __tablename__ = "shops"
    id: int
    name: str
    address: str
    description: Optional[str]
    latitude: float
    longitude: float
    category: str
    price_range: int
    phone: Optional[str]
    website: Optional[str]
    has_wifi: bool
    has_power: bool
    main_image_url: Optional[str]
    payment_methods: List[str]
    created_by: Optional[str]
    created_at: datetime

# 店家圖片模型
class ShopImage:
    __tablename__ = "shop_images"
    id: int
    shop_id: int
    image_url: str
    is_main: bool
    uploaded_by: Optional[str]
    created_at: datetime

# 營業時間模型，(shop_id, day_of_week) 唯一
class ShopHours:
    __tablename__ = "shop_hours"
    id: int
    shop_id: int
    day_of_week: int
    open_time: Optional[str]
    close_time: Optional[str]
    is_closed: bool

# 店家標籤模型
class ShopTag:
    __tablename__ = "shop_tags"
    id: int
    shop_id: int
    tag: str

# 評論模型
class Review:
    __tablename__ = "reviews"
    id: int
    shop_id: int
    user_id: Optional[str]
    reviewer_name: str
    rating: int
    comment: str
    created_at: datetime

# 詳細評論模型
class DetailedReview:
    __tablename__ = "detailed_reviews"
    id: int
    shop_id: int
    user_id: Optional[str]
    reviewer_name: str
    rating: int
    atmosphere_rating: int
    coffee_quality_rating: int
    service_rating: int
    value_rating: int
    visit_purpose: str
    comment: str
    visit_date: Optional[date]
    images: List[str]
    helpful_count: int
    is_flagged: bool
    created_at: datetime
    updated_at: Optional[datetime]

# 用戶模型
class User:
    __tablename__ = "users"
    id: str
    email: Optional[str]
    nickname: str
    avatar_url: Optional[str]
    full_name: Optional[str]
    is_anonymous: bool
    last_active: datetime
    created_at: datetime

# 收藏模型，(user_id, shop_id) 唯一
class UserFavorite:
    __tablename__ = "user_favorites"
    user_id: str
    shop_id: int
    created_at: datetime

ALL_MODELS = [Shop, ShopImage, ShopHours, ShopTag, Review, DetailedReview, User, UserFavorite]
