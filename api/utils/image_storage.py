import io
import logging
import secrets
import time
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse, urlencode, parse_qsl, urlunparse

from PIL import Image
from supabase import Client

from config import SHOP_IMAGES_BUCKET, MAX_IMAGE_SIZE, ALLOWED_IMAGE_TYPES

logger = logging.getLogger(__name__)

# 各尺寸的最佳化圖片 (寬, 高)
IMAGE_SIZES = {
    "thumbnail": (200, 200),
    "medium": (800, 600),
    "large": (1200, 900),
}

class ImageValidationError(ValueError):
    pass

def validate_image(content: bytes, content_type: Optional[str]) -> None:
    """
    檢查圖片格式與大小，不符合時拋出 ImageValidationError
    """
    if not content_type or content_type not in ALLOWED_IMAGE_TYPES:
        raise ImageValidationError("僅接受 JPEG、PNG、WebP 圖片")
    if len(content) > MAX_IMAGE_SIZE:
        raise ImageValidationError(f"檔案大小不可超過 {MAX_IMAGE_SIZE // (1024 * 1024)}MB")

def calculate_optimal_size(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """維持比例縮放到最大尺寸以內，不放大"""
    ratio = min(max_width / width, max_height / height)
    if ratio >= 1:
        return width, height
    return round(width * ratio), round(height * ratio)

def compress_image(
    content: bytes,
    max_width: int = 1920,
    max_height: int = 1080,
    quality: int = 80,
) -> bytes:
    """
    壓縮圖片並轉為 JPEG
    """
    with Image.open(io.BytesIO(content)) as img:
        if img.mode in ("RGBA", "P", "LA"):
            img = img.convert("RGB")
        size = calculate_optimal_size(img.width, img.height, max_width, max_height)
        if size != (img.width, img.height):
            img = img.resize(size, Image.LANCZOS)
        output = io.BytesIO()
        img.save(output, format="JPEG", quality=quality, optimize=True)
        return output.getvalue()

def get_optimized_url(
    original_url: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: Optional[int] = None,
    image_format: Optional[str] = None,
) -> str:
    """
    產生 Supabase 圖片轉換 URL（以查詢參數指定尺寸與品質）
    """
    parsed = urlparse(original_url)
    params = dict(parse_qsl(parsed.query))
    if width:
        params["width"] = str(width)
    if height:
        params["height"] = str(height)
    if quality:
        params["quality"] = str(quality)
    if image_format:
        params["format"] = image_format
    return urlunparse(parsed._replace(query=urlencode(params)))

def optimized_urls(public_url: str, quality: int = 80) -> Dict[str, str]:
    urls = {"original": public_url}
    for name, (width, height) in IMAGE_SIZES.items():
        urls[name] = get_optimized_url(public_url, width=width, height=height, quality=quality)
    return urls

def build_image_path(folder: str, filename: Optional[str] = None, extension: str = "jpg") -> str:
    name = filename or f"{int(time.time() * 1000)}_{secrets.token_hex(4)}.{extension}"
    return f"{folder}/{name}"

def upload_image(
    supabase: Client,
    content: bytes,
    folder: str = "shops",
    filename: Optional[str] = None,
    bucket: str = SHOP_IMAGES_BUCKET,
) -> str:
    """
    壓縮後上傳圖片到 Supabase Storage

    Returns:
        公開的圖片 URL
    """
    compressed = compress_image(content)
    path = build_image_path(folder, filename)

    supabase.storage.from_(bucket).upload(
        path,
        compressed,
        {"content-type": "image/jpeg", "cache-control": "3600", "upsert": "false"},
    )

    public_url = supabase.storage.from_(bucket).get_public_url(path)
    if not public_url:
        raise RuntimeError("無法取得圖片 URL")

    logger.info(f"圖片已上傳: {bucket}/{path}")
    return public_url

def delete_image(supabase: Client, file_path: str, bucket: str = SHOP_IMAGES_BUCKET) -> bool:
    try:
        supabase.storage.from_(bucket).remove([file_path])
        return True
    except Exception as e:
        logger.error(f"刪除圖片時發生錯誤: {str(e)}")
        return False

def extract_storage_path(public_url: str, bucket: str = SHOP_IMAGES_BUCKET) -> Optional[str]:
    """
    從公開 URL 中取出儲存桶內的相對路徑
    """
    marker = f"/storage/v1/object/public/{bucket}/"
    path = urlparse(public_url).path
    if marker not in path:
        return None
    return path.split(marker, 1)[1]
