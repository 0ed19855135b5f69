import json
import logging
from typing import List, Optional, Set

from supabase import Client

from config import FAVORITES_STORAGE_KEY
from schemas.user import AppUser
from utils.local_store import KeyValueStore

logger = logging.getLogger(__name__)

class FavoritesService:
    """
    收藏管理

    未登入或匿名裝置的收藏以 JSON 陣列保存在裝置儲存；登入後改存於
    user_favorites 資料表，並在登入事件時把裝置上的收藏搬到資料庫。
    """

    def __init__(self, supabase: Client, store: KeyValueStore):
        self.supabase = supabase
        self.store = store

    def _parse_local_favorites(self) -> Optional[List[int]]:
        """裝置上的收藏陣列；資料損壞時回傳 None"""
        raw = self.store.get(FAVORITES_STORAGE_KEY)
        if not raw:
            return []
        try:
            ids = json.loads(raw)
            return [int(shop_id) for shop_id in ids]
        except (ValueError, TypeError) as e:
            logger.error(f"讀取裝置收藏失敗: {str(e)}")
            return None

    def read_local_favorites(self) -> List[int]:
        return self._parse_local_favorites() or []

    def write_local_favorites(self, shop_ids: List[int]) -> None:
        self.store.set(FAVORITES_STORAGE_KEY, json.dumps(shop_ids))

    def load_favorites(self, user: Optional[AppUser]) -> Set[int]:
        """
        取得收藏的店家 ID：未登入或匿名時讀裝置儲存，已登入時讀資料庫
        """
        if user is None or user.is_anonymous:
            return set(self.read_local_favorites())

        try:
            result = self.supabase.table("user_favorites") \
                .select("shop_id") \
                .eq("user_id", user.id) \
                .execute()
            return {row["shop_id"] for row in result.data or []}
        except Exception as e:
            logger.error(f"讀取收藏時出錯: {str(e)}")
            return set()

    def toggle_favorite(self, shop_id: int, user: Optional[AppUser]) -> bool:
        """
        切換收藏狀態

        Returns:
            切換後是否為收藏
        """
        if user is None or user.is_anonymous:
            favorites = self.read_local_favorites()
            if shop_id in favorites:
                favorites = [fid for fid in favorites if fid != shop_id]
                self.write_local_favorites(favorites)
                return False
            favorites.append(shop_id)
            self.write_local_favorites(favorites)
            return True

        existing = self.supabase.table("user_favorites") \
            .select("shop_id") \
            .eq("user_id", user.id) \
            .eq("shop_id", shop_id) \
            .execute()

        if existing.data:
            self.supabase.table("user_favorites") \
                .delete() \
                .eq("user_id", user.id) \
                .eq("shop_id", shop_id) \
                .execute()
            logger.info(f"使用者 {user.id} 取消收藏店家 {shop_id}")
            return False

        self.supabase.table("user_favorites") \
            .insert({"user_id": user.id, "shop_id": shop_id}) \
            .execute()
        logger.info(f"使用者 {user.id} 收藏店家 {shop_id}")
        return True

    def migrate_local_favorites(self, user: AppUser) -> Optional[int]:
        """
        把裝置儲存中的收藏搬移到資料庫

        重複的 (user_id, shop_id) 視為已存在而略過；只有寫入成功才清除裝置上的資料，
        失敗或資料損壞時保留原陣列，下次登入再試。

        Returns:
            搬移的筆數，失敗時回傳 None
        """
        if user.is_anonymous:
            return 0

        raw = self.store.get(FAVORITES_STORAGE_KEY)
        if raw is None:
            return 0

        parsed = self._parse_local_favorites()
        if parsed is None:
            # 損壞的資料留在裝置上
            return None

        favorite_ids = list(dict.fromkeys(parsed))
        if not favorite_ids:
            self.store.delete(FAVORITES_STORAGE_KEY)
            return 0

        rows = [{"user_id": user.id, "shop_id": shop_id} for shop_id in favorite_ids]
        try:
            self.supabase.table("user_favorites") \
                .upsert(rows, on_conflict="user_id,shop_id", ignore_duplicates=True) \
                .execute()
        except Exception as e:
            logger.error(f"收藏搬移失敗，保留裝置資料: {str(e)}")
            return None

        self.store.delete(FAVORITES_STORAGE_KEY)
        logger.info(f"使用者 {user.id} 收藏搬移完成: {len(favorite_ids)} 筆")
        return len(favorite_ids)
