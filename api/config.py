import os
from dotenv import load_dotenv

# 載入環境變數
load_dotenv()

# Supabase 配置
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

# 前端網站來源，用於 OAuth 轉址
SITE_URL = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")

# Google Maps 地理編碼配置
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")
GEOCODE_TIMEOUT_SECONDS = float(os.getenv("GEOCODE_TIMEOUT_SECONDS", "10"))

# 店家營業時間所使用的時區
SHOP_TIMEZONE = os.getenv("SHOP_TIMEZONE", "Asia/Tokyo")

# 裝置儲存（取代瀏覽器 localStorage），未設定時使用記憶體
DEVICE_STORE_PATH = os.getenv("DEVICE_STORE_PATH", "")

# 圖片儲存配置
SHOP_IMAGES_BUCKET = os.getenv("SHOP_IMAGES_BUCKET", "shop_images")
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]
MAX_REVIEW_IMAGES = 5

# 每小時操作次數上限
RATE_LIMITS = {
    "shop_creation": 5,
    "review_creation": 20,
    "profile_update": 10,
}
RATE_LIMIT_WINDOW_SECONDS = 60 * 60

# 店家輸入欄位限制
MAX_SHOP_NAME_LENGTH = 100
MAX_ADDRESS_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
MAX_PHONE_LENGTH = 20
MAX_WEBSITE_LENGTH = 200
MAX_TAGS_PER_SHOP = 10
MAX_TAG_LENGTH = 30

# 評論最短字數
MIN_REVIEW_COMMENT_LENGTH = 10
MIN_DETAILED_REVIEW_COMMENT_LENGTH = 20

# 裝置儲存的鍵值
FAVORITES_STORAGE_KEY = "coffee-map-favorites"
SORT_STATE_STORAGE_KEY = "coffee-map-sort-state"

# 開發模式配置
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"
