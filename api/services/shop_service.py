import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import uuid4

from supabase import Client

from schemas.shop import (
    Review,
    Shop,
    ShopCreate,
    ShopHours,
    ShopImage,
    ShopTag,
    ShopWithDetails,
)
from schemas.user import AppUser
from utils.shop_helper import distance_from

logger = logging.getLogger(__name__)

DETAIL_TABLES = {
    "images": "shop_images",
    "hours": "shop_hours",
    "tags": "shop_tags",
    "reviews": "reviews",
}

class ShopService:
    """
    店家資料存取，所有讀寫都透過 Supabase 資料表
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _fetch_details(self, table: str, shop_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
        query = self.supabase.table(table).select("*").in_("shop_id", shop_ids)
        if table == "reviews":
            query = query.order("created_at", desc=True)
        result = query.execute()

        grouped: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for row in result.data or []:
            grouped[row["shop_id"]].append(row)
        return grouped

    def _build_shop(
        self,
        row: Dict[str, Any],
        details: Dict[str, Dict[int, List[Dict[str, Any]]]],
        current_location: Optional[Tuple[float, float]],
        favorite_ids: Set[int],
    ) -> ShopWithDetails:
        shop_id = row["id"]
        return ShopWithDetails(
            **row,
            images=[ShopImage(**r) for r in details["images"].get(shop_id, [])],
            hours=[ShopHours(**r) for r in details["hours"].get(shop_id, [])],
            tags=[ShopTag(**r) for r in details["tags"].get(shop_id, [])],
            reviews=[Review(**r) for r in details["reviews"].get(shop_id, [])],
            distance=distance_from(current_location, row["latitude"], row["longitude"]),
            is_favorite=shop_id in favorite_ids,
        )

    def fetch_shops(
        self,
        current_location: Optional[Tuple[float, float]] = None,
        favorite_ids: Optional[Set[int]] = None,
    ) -> List[ShopWithDetails]:
        """
        一次取得所有店家與其圖片、營業時間、標籤、評論

        Args:
            current_location: 目前位置 (緯度, 經度)，用來計算距離
            favorite_ids: 收藏店家 ID，用來標記 is_favorite
        """
        favorite_ids = favorite_ids or set()

        shops_result = self.supabase.table("shops") \
            .select("*") \
            .order("created_at", desc=True) \
            .execute()

        rows = shops_result.data or []
        if not rows:
            return []

        shop_ids = [row["id"] for row in rows]
        details = {
            key: self._fetch_details(table, shop_ids)
            for key, table in DETAIL_TABLES.items()
        }

        return [self._build_shop(row, details, current_location, favorite_ids) for row in rows]

    def get_shop(
        self,
        shop_id: int,
        current_location: Optional[Tuple[float, float]] = None,
        favorite_ids: Optional[Set[int]] = None,
    ) -> Optional[ShopWithDetails]:
        result = self.supabase.table("shops") \
            .select("*") \
            .eq("id", shop_id) \
            .execute()

        if not result.data:
            return None

        details = {
            key: self._fetch_details(table, [shop_id])
            for key, table in DETAIL_TABLES.items()
        }
        return self._build_shop(result.data[0], details, current_location, favorite_ids or set())

    def list_available_tags(self) -> List[str]:
        result = self.supabase.table("shop_tags").select("tag").execute()
        return sorted({row["tag"].lower() for row in result.data or [] if row.get("tag")})

    def create_shop(self, shop: ShopCreate, user: AppUser) -> Tuple[Shop, List[str]]:
        """
        新增店家，接著寫入標籤與營業時間

        標籤與營業時間寫入失敗只記錄警告，店家本身仍保留。

        Returns:
            (新增的店家, 成功寫入的標籤)
        """
        request_id = uuid4().hex[:8]
        logger.info(f"[{request_id}] 使用者 {user.id} 新增店家: {shop.name}")

        shop_data = shop.model_dump(exclude={"tags", "hours"}, mode="json")
        shop_data["created_by"] = user.id

        result = self.supabase.table("shops") \
            .insert(shop_data) \
            .execute()

        if not result.data:
            raise RuntimeError("新增店家時沒有回傳資料")

        created = Shop(**result.data[0])

        saved_tags: List[str] = []
        if shop.tags:
            try:
                self.supabase.table("shop_tags") \
                    .insert([{"shop_id": created.id, "tag": tag} for tag in shop.tags]) \
                    .execute()
                saved_tags = list(shop.tags)
            except Exception as e:
                logger.warning(f"[{request_id}] 標籤寫入失敗: {str(e)}")

        if shop.hours:
            try:
                hours_rows = []
                for entry in shop.hours:
                    row = entry.model_dump()
                    row["shop_id"] = created.id
                    hours_rows.append(row)
                self.supabase.table("shop_hours") \
                    .upsert(hours_rows, on_conflict="shop_id,day_of_week") \
                    .execute()
            except Exception as e:
                logger.warning(f"[{request_id}] 營業時間寫入失敗: {str(e)}")

        logger.info(f"[{request_id}] 店家新增完成: id={created.id}")
        return created, saved_tags

    def add_shop_image(self, shop_id: int, image_url: str, user: AppUser, is_main: bool = False) -> ShopImage:
        image_data = {
            "shop_id": shop_id,
            "image_url": image_url,
            "is_main": is_main,
            "uploaded_by": user.id,
        }
        result = self.supabase.table("shop_images").insert(image_data).execute()
        if not result.data:
            raise RuntimeError("寫入圖片資料時沒有回傳資料")

        if is_main:
            self.supabase.table("shops") \
                .update({"main_image_url": image_url}) \
                .eq("id", shop_id) \
                .execute()

        return ShopImage(**result.data[0])
