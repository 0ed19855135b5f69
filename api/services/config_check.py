import logging
from typing import Any, Dict, List, Optional

from supabase import Client

import config
from models.supabase import ALL_MODELS

logger = logging.getLogger(__name__)

REQUIRED_TABLES = [model.__tablename__ for model in ALL_MODELS]

REQUIRED_ENV_VARS = ["SUPABASE_URL", "SUPABASE_KEY"]

def _result(status: str, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    result = {"status": status, "message": message}
    if details is not None:
        result["details"] = details
    return result

def check_environment_variables() -> List[Dict[str, Any]]:
    """
    檢查必要的環境變數；缺少時記錄錯誤但不中止啟動
    """
    results = []
    for name in REQUIRED_ENV_VARS:
        value = getattr(config, name, None)
        if not value:
            logger.error(f"缺少環境變數: {name}")
            results.append(_result("error", f"Missing environment variable: {name}"))
        elif name == "SUPABASE_URL" and not value.startswith("https://"):
            logger.warning(f"{name} 格式可能有誤，應以 https:// 開頭")
            results.append(_result("warning", f"Invalid URL format for {name}", "Should start with https://"))
        else:
            results.append(_result("success", f"{name} is configured"))
    return results

def check_supabase_configuration(supabase: Client) -> List[Dict[str, Any]]:
    """
    檢查資料表與儲存桶是否可存取
    """
    results = []

    for table in REQUIRED_TABLES:
        try:
            supabase.table(table).select("*").limit(1).execute()
            results.append(_result("success", f"Table '{table}' exists and accessible"))
        except Exception as e:
            code = getattr(e, "code", None)
            if code == "42P01":
                results.append(_result("error", f"Table '{table}' does not exist"))
            else:
                results.append(_result("warning", f"Table '{table}' has issues", str(e)))

    try:
        buckets = supabase.storage.list_buckets()
        names = [getattr(bucket, "name", None) or bucket.get("name") for bucket in buckets]
        if config.SHOP_IMAGES_BUCKET in names:
            results.append(_result("success", f"{config.SHOP_IMAGES_BUCKET} bucket exists"))
        else:
            results.append(_result("warning", f"{config.SHOP_IMAGES_BUCKET} bucket not found"))
    except Exception as e:
        results.append(_result("error", "Storage access failed", str(e)))

    return results

def summarize(results: List[Dict[str, Any]]) -> Dict[str, int]:
    summary = {"success": 0, "warning": 0, "error": 0}
    for result in results:
        summary[result["status"]] += 1
    return summary
