from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
import logging

from schemas.user import (
    AppUser,
    FavoritesResponse,
    FavoriteToggleResponse,
    FavoritesMigrationRequest,
    FavoritesMigrationResponse,
)
from dependencies import get_current_user, get_optional_user, get_favorites_service
from services.favorites_service import FavoritesService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("", response_model=FavoritesResponse)
async def list_favorites(
    favorites: FavoritesService = Depends(get_favorites_service),
    current_user: Optional[AppUser] = Depends(get_optional_user),
):
    """
    取得收藏店家 ID
    - 未登入或匿名: 裝置儲存
    - 已登入: 資料庫
    """
    shop_ids = favorites.load_favorites(current_user)
    return FavoritesResponse(
        shop_ids=sorted(shop_ids),
        source="local" if current_user is None or current_user.is_anonymous else "remote",
    )

@router.post("/{shop_id}/toggle", response_model=FavoriteToggleResponse)
async def toggle_favorite(
    shop_id: int,
    favorites: FavoritesService = Depends(get_favorites_service),
    current_user: Optional[AppUser] = Depends(get_optional_user),
):
    try:
        is_favorite = favorites.toggle_favorite(shop_id, current_user)
        return FavoriteToggleResponse(shop_id=shop_id, is_favorite=is_favorite)
    except Exception as e:
        logger.error(f"收藏操作錯誤: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="收藏操作失敗"
        )

@router.post("/migrate", response_model=FavoritesMigrationResponse)
async def migrate_favorites(
    request: FavoritesMigrationRequest,
    favorites: FavoritesService = Depends(get_favorites_service),
    current_user: AppUser = Depends(get_current_user),
):
    """
    手動把裝置上的收藏搬到帳號
    - shop_ids: 由前端帶入的收藏，會先與裝置儲存合併
    """
    if request.shop_ids is not None:
        merged = favorites.read_local_favorites() + list(request.shop_ids)
        favorites.write_local_favorites(list(dict.fromkeys(merged)))

    migrated = favorites.migrate_local_favorites(current_user)
    if migrated is None:
        return FavoritesMigrationResponse(success=False, migrated=0)
    return FavoritesMigrationResponse(success=True, migrated=migrated)
