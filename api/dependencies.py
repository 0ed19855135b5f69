from fastapi import Depends, HTTPException, status, Header, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import create_client, Client, ClientOptions
import logging
from typing import Optional
from uuid import uuid4

from config import SUPABASE_URL, SUPABASE_KEY, SUPABASE_SERVICE_KEY, DEVICE_STORE_PATH
from schemas.user import AppUser
from services.favorites_service import FavoritesService
from services.rate_limiter import RateLimiter
from services.review_service import ReviewService
from services.session_manager import SessionManager, FavoritesSync, attach_favorites_sync, convert_supabase_user
from services.shop_service import ShopService
from utils.local_store import KeyValueStore, MemoryStore, JsonFileStore, DeviceStore, AuthStorageAdapter

# 設置日誌記錄器
logger = logging.getLogger(__name__)

DEVICE_COOKIE_NAME = "device_id"

# 單例對象，存儲已初始化的客戶端
_supabase_client = None
_supabase_service_client = None
_device_backend = None

# 創建 Supabase 客戶端（公開金鑰）
def get_supabase() -> Client:
    global _supabase_client
    try:
        if _supabase_client is not None:
            return _supabase_client

        if not SUPABASE_URL or not SUPABASE_KEY:
            logger.error(f"Supabase 配置缺失: URL={bool(SUPABASE_URL)}, KEY={bool(SUPABASE_KEY)}")
            raise ValueError("Supabase URL 或 API 金鑰未配置")

        logger.info(f"初始化 Supabase 客戶端: URL={SUPABASE_URL[:10]}...")
        client = create_client(SUPABASE_URL, SUPABASE_KEY)

        # 測試連接
        try:
            client.table("shops").select("id").limit(1).execute()
            logger.info("Supabase 連接成功")
        except Exception as e:
            logger.warning(f"Supabase 連接測試遇到問題: {str(e)}")

        _supabase_client = client
        return client
    except Exception as e:
        logger.error(f"初始化 Supabase 客戶端時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="後端服務尚未設定"
        )

# 創建 Supabase 服務客戶端 (擁有更高權限)，資料表讀寫主要使用這個
def get_supabase_service() -> Client:
    global _supabase_service_client
    if _supabase_service_client is not None:
        return _supabase_service_client

    if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
        logger.warning("未設定 SUPABASE_SERVICE_KEY，改用公開金鑰客戶端")
        return get_supabase()

    try:
        logger.info(f"初始化 Supabase 服務客戶端: URL={SUPABASE_URL[:10]}...")
        _supabase_service_client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
        return _supabase_service_client
    except Exception as e:
        logger.error(f"初始化 Supabase 服務客戶端時出錯: {str(e)}")
        # 返回常規客戶端作為備用
        return get_supabase()

# 裝置儲存的底層實作，程序內共用
def get_device_backend() -> KeyValueStore:
    global _device_backend
    if _device_backend is None:
        if DEVICE_STORE_PATH:
            logger.info(f"裝置儲存使用檔案: {DEVICE_STORE_PATH}")
            _device_backend = JsonFileStore(DEVICE_STORE_PATH)
        else:
            _device_backend = MemoryStore()
    return _device_backend

# 由標頭或 Cookie 取得裝置 ID，沒有時產生新的並寫入 Cookie
def get_device_id(
    request: Request,
    response: Response,
    x_device_id: Optional[str] = Header(None),
) -> str:
    device_id = x_device_id or request.cookies.get(DEVICE_COOKIE_NAME)
    if not device_id:
        device_id = uuid4().hex
        response.set_cookie(DEVICE_COOKIE_NAME, device_id, httponly=True, samesite="lax")
        logger.info(f"新裝置: {device_id[:8]}")
    return device_id

def get_device_store(
    device_id: str = Depends(get_device_id),
    backend: KeyValueStore = Depends(get_device_backend),
) -> KeyValueStore:
    return DeviceStore(backend, device_id)

# 每個裝置各自的 Auth 客戶端，OAuth code verifier 與登入階段存在裝置儲存
def get_auth_client(store: KeyValueStore = Depends(get_device_store)) -> Client:
    if not SUPABASE_URL or not SUPABASE_KEY:
        logger.error(f"Supabase 配置缺失: URL={bool(SUPABASE_URL)}, KEY={bool(SUPABASE_KEY)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="後端服務尚未設定"
        )
    options = ClientOptions(
        storage=AuthStorageAdapter(store),
        auto_refresh_token=False,
        persist_session=True,
        flow_type="pkce",
    )
    return create_client(SUPABASE_URL, SUPABASE_KEY, options=options)

# 創建安全依賴
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

def _verify_token(token: str, supabase: Client) -> AppUser:
    logger.debug(f"收到的JWT令牌: {token[:10]}...")
    try:
        user = supabase.auth.get_user(token)
    except Exception as e:
        logger.error(f"JWT驗證失敗: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="無效的認證令牌",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user or not user.user:
        logger.warning("用戶驗證失敗: JWT令牌無效")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="無效的認證令牌",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return convert_supabase_user(user.user)

# 驗證當前用戶
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    supabase: Client = Depends(get_supabase_service),
) -> AppUser:
    return _verify_token(credentials.credentials, supabase)

# 未帶令牌時視為未登入裝置
async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    supabase: Client = Depends(get_supabase_service),
) -> Optional[AppUser]:
    if credentials is None:
        return None
    return _verify_token(credentials.credentials, supabase)

def get_shop_service(supabase: Client = Depends(get_supabase_service)) -> ShopService:
    return ShopService(supabase)

def get_review_service(supabase: Client = Depends(get_supabase_service)) -> ReviewService:
    return ReviewService(supabase)

def get_favorites_service(
    supabase: Client = Depends(get_supabase_service),
    store: KeyValueStore = Depends(get_device_store),
) -> FavoritesService:
    return FavoritesService(supabase, store)

def get_rate_limiter(
    store: KeyValueStore = Depends(get_device_store),
    current_user: AppUser = Depends(get_current_user),
) -> RateLimiter:
    return RateLimiter(store, current_user.id)

def get_session_manager(auth_client: Client = Depends(get_auth_client)) -> SessionManager:
    return SessionManager(auth_client)

# 登入事件時搬移裝置收藏
def get_favorites_sync(
    manager: SessionManager = Depends(get_session_manager),
    favorites: FavoritesService = Depends(get_favorites_service),
) -> FavoritesSync:
    return attach_favorites_sync(manager, favorites)
