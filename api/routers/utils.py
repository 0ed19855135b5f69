from fastapi import APIRouter, Depends
from supabase import Client

from dependencies import get_supabase
from services.config_check import check_environment_variables, check_supabase_configuration, summarize

router = APIRouter()

@router.get("/health")
async def health_check():
    """
    健康檢查端點
    """
    return {"status": "ok"}

@router.get("/config-check")
async def config_check(supabase: Client = Depends(get_supabase)):
    """
    檢查環境變數、資料表與圖片儲存桶
    """
    results = check_environment_variables() + check_supabase_configuration(supabase)
    return {"results": results, "summary": summarize(results)}
