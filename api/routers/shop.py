from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from typing import List, Optional, Tuple
import logging

from schemas.filters import FilterState, SortState, SortOption, SortDirection, ShopSearchRequest, DistanceFilter
from schemas.shop import (
    ShopCreate,
    ShopCreateResponse,
    ShopImageResponse,
    ShopListResponse,
    ShopStats,
    ShopWithDetails,
    GeocodeRequest,
    GeocodeResponse,
)
from schemas.user import AppUser
from dependencies import (
    get_current_user,
    get_optional_user,
    get_shop_service,
    get_favorites_service,
    get_rate_limiter,
    get_device_store,
)
from services.favorites_service import FavoritesService
from services.rate_limiter import RateLimiter
from services.shop_service import ShopService
from utils.geocoding import geocode, GeocodeError
from utils.image_storage import validate_image, upload_image, optimized_urls, ImageValidationError
from utils.local_store import KeyValueStore
from utils.shop_filters import apply_filters, shop_now
from utils.shop_stats import calculate_filter_stats, calculate_shop_stats
from utils.sorting import sort_shops, get_sort_description, load_sort_state

router = APIRouter()
logger = logging.getLogger(__name__)

GEOCODE_ERROR_STATUS = {
    "timeout": status.HTTP_504_GATEWAY_TIMEOUT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_coordinate": status.HTTP_502_BAD_GATEWAY,
    "request_failed": status.HTTP_502_BAD_GATEWAY,
    "not_configured": status.HTTP_503_SERVICE_UNAVAILABLE,
}

def _location(latitude: Optional[float], longitude: Optional[float]) -> Optional[Tuple[float, float]]:
    if latitude is None or longitude is None:
        return None
    return (latitude, longitude)

def _list_shops(
    filters: FilterState,
    sort_state: SortState,
    current_location: Optional[Tuple[float, float]],
    shop_service: ShopService,
    favorites: FavoritesService,
    current_user: Optional[AppUser],
) -> ShopListResponse:
    favorite_ids = favorites.load_favorites(current_user)
    all_shops = shop_service.fetch_shops(current_location, favorite_ids)

    now = shop_now()
    filtered = apply_filters(all_shops, filters, favorite_ids, current_location, now)
    ordered = sort_shops(filtered, sort_state, current_location)

    return ShopListResponse(
        shops=ordered,
        stats=calculate_filter_stats(ordered, all_shops, favorite_ids, now),
        sort_description=get_sort_description(sort_state, current_location is not None),
        active_filter_count=filters.active_filter_count(),
    )

@router.get("", response_model=ShopListResponse)
async def list_shops(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    search: str = Query(""),
    category: str = Query("all"),
    price_range: str = Query("all"),
    features: List[str] = Query([]),
    tags: List[str] = Query([]),
    payment_methods: List[str] = Query([]),
    show_favorites_only: bool = Query(False),
    is_open_now: bool = Query(False),
    has_reviews: bool = Query(False),
    min_rating: float = Query(0, ge=0, le=5),
    max_distance_km: Optional[float] = Query(None, gt=0),
    sort: Optional[SortOption] = Query(None),
    direction: Optional[SortDirection] = Query(None),
    shop_service: ShopService = Depends(get_shop_service),
    favorites: FavoritesService = Depends(get_favorites_service),
    store: KeyValueStore = Depends(get_device_store),
    current_user: Optional[AppUser] = Depends(get_optional_user),
):
    """
    取得店家清單
    - 未指定排序時使用裝置保存的排序狀態
    """
    try:
        filters = FilterState(
            search=search,
            category=category,
            price_range=price_range,
            features=features,
            tags=tags,
            payment_methods=payment_methods,
            show_favorites_only=show_favorites_only,
            is_open_now=is_open_now,
            has_reviews=has_reviews,
            min_rating=min_rating,
            distance=DistanceFilter(enabled=max_distance_km is not None, max_km=max_distance_km or 5),
        )

        sort_state = load_sort_state(store)
        if sort is not None:
            sort_state = SortState(option=sort, direction=direction or SortDirection.ASC)
        elif direction is not None:
            sort_state = SortState(option=sort_state.option, direction=direction)

        return _list_shops(
            filters, sort_state, _location(latitude, longitude),
            shop_service, favorites, current_user,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"取得店家清單時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="店家資料載入失敗"
        )

@router.post("/search", response_model=ShopListResponse)
async def search_shops(
    request: ShopSearchRequest,
    shop_service: ShopService = Depends(get_shop_service),
    favorites: FavoritesService = Depends(get_favorites_service),
    current_user: Optional[AppUser] = Depends(get_optional_user),
):
    """
    以完整的篩選與排序條件查詢店家
    """
    try:
        return _list_shops(
            request.filters, request.sort, _location(request.latitude, request.longitude),
            shop_service, favorites, current_user,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"查詢店家時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="店家資料載入失敗"
        )

@router.get("/tags", response_model=List[str])
async def list_tags(shop_service: ShopService = Depends(get_shop_service)):
    """
    取得所有店家標籤，用於篩選選項
    """
    try:
        return shop_service.list_available_tags()
    except Exception as e:
        logger.error(f"取得標籤時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="標籤載入失敗"
        )

@router.get("/stats", response_model=ShopStats)
async def shop_stats(shop_service: ShopService = Depends(get_shop_service)):
    try:
        return calculate_shop_stats(shop_service.fetch_shops())
    except Exception as e:
        logger.error(f"計算店家統計時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="統計資料載入失敗"
        )

@router.post("/geocode", response_model=GeocodeResponse)
async def geocode_address(request: GeocodeRequest):
    """
    將地址轉換為坐標，失敗時表單可修改後重試
    """
    try:
        coordinate = await geocode(request.address)
    except GeocodeError as e:
        raise HTTPException(
            status_code=GEOCODE_ERROR_STATUS.get(e.reason, status.HTTP_502_BAD_GATEWAY),
            detail=e.message
        )

    return GeocodeResponse(
        latitude=coordinate.latitude,
        longitude=coordinate.longitude,
        formatted_address=coordinate.formatted_address,
    )

@router.get("/{shop_id}", response_model=ShopWithDetails)
async def get_shop(
    shop_id: int,
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    shop_service: ShopService = Depends(get_shop_service),
    favorites: FavoritesService = Depends(get_favorites_service),
    current_user: Optional[AppUser] = Depends(get_optional_user),
):
    try:
        favorite_ids = favorites.load_favorites(current_user)
        shop = shop_service.get_shop(shop_id, _location(latitude, longitude), favorite_ids)
    except Exception as e:
        logger.error(f"取得店家 {shop_id} 時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="店家資料載入失敗"
        )

    if shop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="找不到此店家"
        )
    return shop

@router.post("", response_model=ShopCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_shop(
    shop: ShopCreate,
    shop_service: ShopService = Depends(get_shop_service),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    current_user: AppUser = Depends(get_current_user),
):
    """
    新增店家
    - 每位使用者每小時最多 5 家
    """
    try:
        if not rate_limiter.check_rate_limit("shop_creation"):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="新增店家次數已達上限，請稍後再試"
            )

        created, saved_tags = shop_service.create_shop(shop, current_user)
        return ShopCreateResponse(
            shop=created,
            tags=saved_tags,
            remaining_creations=rate_limiter.remaining("shop_creation"),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"新增店家時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="店家新增失敗"
        )

@router.post("/{shop_id}/images", response_model=ShopImageResponse, status_code=status.HTTP_201_CREATED)
async def upload_shop_image(
    shop_id: int,
    file: UploadFile = File(...),
    is_main: bool = Form(False),
    shop_service: ShopService = Depends(get_shop_service),
    current_user: AppUser = Depends(get_current_user),
):
    """
    上傳店家照片，壓縮後存到 Supabase Storage
    """
    content = await file.read()
    try:
        validate_image(content, file.content_type)
    except ImageValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    try:
        public_url = upload_image(shop_service.supabase, content, folder="shops")
        image = shop_service.add_shop_image(shop_id, public_url, current_user, is_main)
        return ShopImageResponse(image=image, urls=optimized_urls(public_url))
    except Exception as e:
        logger.error(f"上傳店家 {shop_id} 圖片時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="圖片上傳失敗"
        )
