import asyncio
import logging
import httpx
from dataclasses import dataclass
from typing import Dict, List, Any, Optional

from config import GOOGLE_MAPS_API_KEY, GEOCODE_TIMEOUT_SECONDS, MAX_ADDRESS_LENGTH
from utils.validation import sanitize_input, is_valid_coordinate

logger = logging.getLogger(__name__)

# Google Maps API 基礎URL
GEOCODING_BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

@dataclass
class Coordinate:
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None

class GeocodeError(Exception):
    """
    地理編碼失敗

    reason: timeout / not_found / invalid_coordinate / request_failed / not_configured
    """
    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message

def extract_coordinates(geocode_result: Dict[str, Any]) -> Coordinate:
    """
    從地理編碼結果中提取經緯度坐標
    """
    location = geocode_result["geometry"]["location"]
    return Coordinate(
        latitude=location["lat"],
        longitude=location["lng"],
        formatted_address=geocode_result.get("formatted_address"),
    )

def format_address_components(components: List[Dict[str, Any]]) -> Dict[str, str]:
    """
    處理並格式化地址組件
    """
    result = {}

    # 地址組件類型映射
    component_types = {
        "street_number": "street_number",
        "route": "street",
        "sublocality_level_1": "district",
        "locality": "city",
        "administrative_area_level_1": "state",
        "country": "country",
        "postal_code": "postal_code"
    }

    for component in components:
        for type_key, result_key in component_types.items():
            if type_key in component.get("types", []):
                result[result_key] = component["long_name"]

    return result

def format_address(geocode_result: Dict[str, Any]) -> Dict[str, Any]:
    """
    從地理編碼結果中提取並格式化地址信息
    """
    result = {
        "formatted_address": geocode_result.get("formatted_address", ""),
    }

    if "address_components" in geocode_result:
        result.update(format_address_components(geocode_result["address_components"]))

    if "geometry" in geocode_result and "location" in geocode_result["geometry"]:
        location = geocode_result["geometry"]["location"]
        result["latitude"] = location["lat"]
        result["longitude"] = location["lng"]

    return result

async def _request_geocode(address: str, client: Optional[httpx.AsyncClient]) -> Dict[str, Any]:
    params = {
        "address": address,
        "key": GOOGLE_MAPS_API_KEY
    }
    if client is not None:
        response = await client.get(GEOCODING_BASE_URL, params=params)
    else:
        async with httpx.AsyncClient() as own_client:
            response = await own_client.get(GEOCODING_BASE_URL, params=params)
    response.raise_for_status()
    return response.json()

async def geocode(
    address: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = GEOCODE_TIMEOUT_SECONDS,
) -> Coordinate:
    """
    將地址轉換為經緯度坐標

    Args:
        address: 要地理編碼的地址字符串
        client: 可共用的 httpx 客戶端
        timeout: 整體逾時秒數

    Returns:
        Coordinate

    Raises:
        GeocodeError: 逾時、查無結果、坐標無效或請求失敗
    """
    if not GOOGLE_MAPS_API_KEY:
        logger.error("Google Maps API金鑰未設置")
        raise GeocodeError("not_configured", "地圖功能目前無法使用")

    cleaned = sanitize_input(address, MAX_ADDRESS_LENGTH)
    if not cleaned:
        raise GeocodeError("not_found", "請輸入地址")

    try:
        data = await asyncio.wait_for(_request_geocode(cleaned, client), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"地理編碼逾時: {cleaned}")
        raise GeocodeError("timeout", "地址解析逾時")
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"地理編碼請求出錯: {str(e)}")
        raise GeocodeError("request_failed", "地址解析失敗")

    if data.get("status") != "OK" or not data.get("results"):
        logger.warning(f"地理編碼失敗: {data.get('status')} - {cleaned}")
        raise GeocodeError("not_found", "找不到此地址")

    coordinate = extract_coordinates(data["results"][0])
    if not is_valid_coordinate(coordinate.latitude, coordinate.longitude):
        logger.warning(f"地理編碼回傳無效坐標: ({coordinate.latitude}, {coordinate.longitude})")
        raise GeocodeError("invalid_coordinate", "回傳的坐標無效")

    return coordinate
