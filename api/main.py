import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from config import SITE_URL, DEV_MODE
from routers import shop, review, favorite, sort_state, auth, utils
from services.config_check import check_environment_variables


logging.basicConfig(level=logging.INFO)

# 缺少設定只記錄錯誤，不中止服務
check_environment_variables()

app = FastAPI(
    title="Coffee Map API",
    description="咖啡地圖的 API 服務",
    version="0.1.0"
)

# 設置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if DEV_MODE else [SITE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 註冊路由
app.include_router(shop.router, prefix="/api/shops", tags=["店家"])
app.include_router(review.router, prefix="/api/shops", tags=["評論"])
app.include_router(favorite.router, prefix="/api/favorites", tags=["收藏"])
app.include_router(sort_state.router, prefix="/api/sort-state", tags=["排序"])
app.include_router(auth.router, prefix="/api/auth", tags=["登入"])
app.include_router(auth.callback_router, tags=["登入"])
app.include_router(utils.router, prefix="/api/utils", tags=["工具"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
