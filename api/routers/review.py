from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from pydantic import ValidationError
from typing import List
import logging

from config import MAX_REVIEW_IMAGES
from schemas.review import ReviewCreate, ReviewResponse, DetailedReviewCreate, DetailedReviewResponse
from schemas.user import AppUser
from dependencies import get_current_user, get_review_service, get_rate_limiter
from services.rate_limiter import RateLimiter
from services.review_service import ReviewService
from utils.image_storage import validate_image, ImageValidationError

router = APIRouter()
logger = logging.getLogger(__name__)

def _check_review_limit(rate_limiter: RateLimiter) -> None:
    if not rate_limiter.check_rate_limit("review_creation"):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="評論次數已達上限，請稍後再試"
        )

@router.get("/{shop_id}/reviews", response_model=List[ReviewResponse])
async def list_reviews(
    shop_id: int,
    review_service: ReviewService = Depends(get_review_service),
):
    try:
        return review_service.list_reviews(shop_id)
    except Exception as e:
        logger.error(f"取得店家 {shop_id} 評論時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="評論載入失敗"
        )

@router.post("/{shop_id}/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    shop_id: int,
    review: ReviewCreate,
    review_service: ReviewService = Depends(get_review_service),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    current_user: AppUser = Depends(get_current_user),
):
    """
    新增評論
    - 每位使用者每小時最多 20 則
    """
    try:
        _check_review_limit(rate_limiter)
        return review_service.create_review(shop_id, review, current_user)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"新增評論時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="評論送出失敗"
        )

@router.get("/{shop_id}/detailed-reviews", response_model=List[DetailedReviewResponse])
async def list_detailed_reviews(
    shop_id: int,
    review_service: ReviewService = Depends(get_review_service),
):
    try:
        return review_service.list_detailed_reviews(shop_id)
    except Exception as e:
        logger.error(f"取得店家 {shop_id} 詳細評論時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="評論載入失敗"
        )

@router.post("/{shop_id}/detailed-reviews", response_model=DetailedReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_detailed_review(
    shop_id: int,
    payload: str = Form(...),
    images: List[UploadFile] = File([]),
    review_service: ReviewService = Depends(get_review_service),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    current_user: AppUser = Depends(get_current_user),
):
    """
    新增詳細評論
    - payload: 評論內容 JSON
    - images: 最多 5 張照片，先上傳再寫入評論
    """
    try:
        review = DetailedReviewCreate.model_validate_json(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False)
        )

    if len(review.images) + len(images) > MAX_REVIEW_IMAGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"照片最多 {MAX_REVIEW_IMAGES} 張"
        )

    contents = []
    for image in images:
        content = await image.read()
        try:
            validate_image(content, image.content_type)
        except ImageValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        contents.append(content)

    try:
        _check_review_limit(rate_limiter)
        if contents:
            uploaded = review_service.upload_review_images(shop_id, current_user, contents)
            review = review.model_copy(update={"images": review.images + uploaded})
        return review_service.create_detailed_review(shop_id, review, current_user)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"新增詳細評論時出錯: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="評論送出失敗"
        )
