import math
import re
from urllib.parse import urlparse

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_PHONE_PATTERN = re.compile(r"^[\d\-\+\(\)\s]+$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def sanitize_input(value: str, max_length: int) -> str:
    """
    清理使用者輸入：去除前後空白、<script> 區塊與角括號，並截斷長度
    """
    if not value:
        return ""
    cleaned = _SCRIPT_BLOCK.sub("", value.strip())
    cleaned = cleaned.replace("<", "").replace(">", "")
    return cleaned[:max_length]


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_phone(phone: str) -> bool:
    return bool(_PHONE_PATTERN.match(phone)) and 10 <= len(phone) <= 20


def is_valid_coordinate(lat: float, lng: float) -> bool:
    return (
        math.isfinite(lat) and math.isfinite(lng)
        and -90 <= lat <= 90
        and -180 <= lng <= 180
    )


def is_valid_time(value: str) -> bool:
    """檢查 24 小時制 HH:MM 格式"""
    return bool(value) and bool(_TIME_PATTERN.match(value))
