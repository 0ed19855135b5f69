from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from fastapi.responses import RedirectResponse
from typing import Optional
import logging

from config import SITE_URL
from schemas.user import (
    AppUser,
    AnonymousSignInRequest,
    UserProfileUpdate,
    SessionResponse,
    OAuthUrlResponse,
)
from dependencies import get_current_user, get_session_manager, get_favorites_sync, get_rate_limiter
from services.rate_limiter import RateLimiter
from services.session_manager import SessionManager, AuthError, FavoritesSync

router = APIRouter()
callback_router = APIRouter()
logger = logging.getLogger(__name__)

def _session_response(manager: SessionManager, sync: Optional[FavoritesSync] = None) -> SessionResponse:
    session = manager.session
    return SessionResponse(
        user=manager.get_current_user(),
        access_token=getattr(session, "access_token", None),
        refresh_token=getattr(session, "refresh_token", None),
        favorites_migrated=sync.migrated if sync else 0,
    )

@callback_router.get("/auth/callback", name="auth_callback")
async def auth_callback(
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    manager: SessionManager = Depends(get_session_manager),
    sync: FavoritesSync = Depends(get_favorites_sync),
):
    """
    OAuth 登入完成後的轉址端點
    - 以授權碼換取登入階段後轉回網站首頁
    """
    if error:
        logger.error(f"OAuth 回傳錯誤: {error} - {error_description}")
        return RedirectResponse(f"{SITE_URL}/?error=auth_callback_error")

    if code:
        try:
            manager.exchange_code_for_session(code)
        except AuthError as e:
            logger.error(f"Auth callback error: {str(e)}")
            return RedirectResponse(f"{SITE_URL}/?error=auth_callback_error")

    return RedirectResponse(f"{SITE_URL}/?auth=success")

@router.get("/google", response_model=OAuthUrlResponse)
async def google_sign_in(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    取得 Google 登入網址
    """
    redirect_to = str(request.url_for("auth_callback"))
    try:
        return OAuthUrlResponse(url=manager.sign_in_with_google(redirect_to))
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )

@router.post("/anonymous", response_model=SessionResponse)
async def anonymous_sign_in(
    request: AnonymousSignInRequest,
    manager: SessionManager = Depends(get_session_manager),
    sync: FavoritesSync = Depends(get_favorites_sync),
):
    """
    以暱稱匿名登入，收藏保留在裝置上
    """
    if not request.nickname.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="請輸入暱稱"
        )
    try:
        manager.sign_in_anonymously(request.nickname)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e)
        )
    return _session_response(manager, sync)

@router.get("/me", response_model=SessionResponse)
async def get_session(
    manager: SessionManager = Depends(get_session_manager),
    sync: FavoritesSync = Depends(get_favorites_sync),
):
    """
    取得裝置目前的登入狀態，未登入時 user 為 null
    """
    manager.restore_session()
    return _session_response(manager, sync)

@router.put("/profile", response_model=AppUser)
async def update_profile(
    profile: UserProfileUpdate,
    manager: SessionManager = Depends(get_session_manager),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    current_user: AppUser = Depends(get_current_user),
):
    """
    更新個人資料
    - 每位使用者每小時最多 10 次
    """
    session_user = manager.restore_session()
    if session_user is None or session_user.id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="登入階段已失效，請重新登入"
        )

    if not rate_limiter.check_rate_limit("profile_update"):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="更新次數已達上限，請稍後再試"
        )

    try:
        return manager.update_profile(
            nickname=profile.nickname,
            full_name=profile.full_name,
            avatar_url=profile.avatar_url,
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/sign-out")
async def sign_out(manager: SessionManager = Depends(get_session_manager)):
    """
    登出，只清除這個裝置的登入狀態
    """
    try:
        manager.sign_out()
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
    return {"success": True}
