import logging
from datetime import datetime, timezone
from typing import List

from supabase import Client

from schemas.review import (
    ReviewCreate,
    ReviewResponse,
    DetailedReviewCreate,
    DetailedReviewResponse,
)
from schemas.user import AppUser
from utils.image_storage import upload_image

logger = logging.getLogger(__name__)

DEFAULT_REVIEWER_NAME = "Coffee Lover"

class ReviewService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_reviews(self, shop_id: int) -> List[ReviewResponse]:
        result = self.supabase.table("reviews") \
            .select("*") \
            .eq("shop_id", shop_id) \
            .order("created_at", desc=True) \
            .execute()
        return [ReviewResponse(**row) for row in result.data or []]

    def create_review(self, shop_id: int, review: ReviewCreate, user: AppUser) -> ReviewResponse:
        review_data = {
            "shop_id": shop_id,
            "user_id": user.id,
            "reviewer_name": user.nickname or DEFAULT_REVIEWER_NAME,
            "rating": review.rating,
            "comment": review.comment,
        }
        result = self.supabase.table("reviews").insert(review_data).execute()
        if not result.data:
            raise RuntimeError("新增評論時沒有回傳資料")
        logger.info(f"使用者 {user.id} 評論店家 {shop_id}: {review.rating} 星")
        return ReviewResponse(**result.data[0])

    def list_detailed_reviews(self, shop_id: int) -> List[DetailedReviewResponse]:
        """只回傳未被檢舉的評論，新的在前"""
        result = self.supabase.table("detailed_reviews") \
            .select("*") \
            .eq("shop_id", shop_id) \
            .eq("is_flagged", False) \
            .order("created_at", desc=True) \
            .execute()
        reviews = []
        for row in result.data or []:
            row["images"] = row.get("images") or []
            reviews.append(DetailedReviewResponse(**row))
        return reviews

    def upload_review_images(
        self,
        shop_id: int,
        user: AppUser,
        files: List[bytes],
    ) -> List[str]:
        """
        上傳評論圖片；單張失敗時記錄錯誤並略過

        Args:
            files: 圖片檔案內容清單
        """
        urls = []
        stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        for index, content in enumerate(files):
            filename = f"{shop_id}_{user.id}_{stamp}_{index}.jpg"
            try:
                urls.append(upload_image(self.supabase, content, folder="reviews", filename=filename))
            except Exception as e:
                logger.error(f"評論圖片上傳失敗 ({filename}): {str(e)}")
        return urls

    def create_detailed_review(
        self,
        shop_id: int,
        review: DetailedReviewCreate,
        user: AppUser,
    ) -> DetailedReviewResponse:
        review_data = review.model_dump(mode="json")
        review_data.update({
            "shop_id": shop_id,
            "user_id": user.id,
            "reviewer_name": user.nickname or DEFAULT_REVIEWER_NAME,
            "is_flagged": False,
        })

        result = self.supabase.table("detailed_reviews").insert(review_data).execute()
        if not result.data:
            raise RuntimeError("新增詳細評論時沒有回傳資料")

        row = result.data[0]
        row["images"] = row.get("images") or []
        logger.info(f"使用者 {user.id} 新增詳細評論: 店家 {shop_id}")
        return DetailedReviewResponse(**row)
