import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from supabase import Client

from schemas.user import AppUser, UserRole
from services.favorites_service import FavoritesService

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, Optional[AppUser]], None]

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"

class AuthError(Exception):
    pass

def convert_supabase_user(supabase_user: Any, is_anonymous: Optional[bool] = None) -> AppUser:
    """
    將 Supabase 使用者轉為 AppUser，暱稱依序取 nickname、name、full_name 的名字
    """
    metadata = getattr(supabase_user, "user_metadata", None) or {}
    app_metadata = getattr(supabase_user, "app_metadata", None) or {}

    if is_anonymous is None:
        is_anonymous = bool(getattr(supabase_user, "is_anonymous", False) or metadata.get("is_anonymous", False))

    full_name = metadata.get("full_name") or metadata.get("name")
    nickname = (
        metadata.get("nickname")
        or metadata.get("name")
        or (metadata.get("full_name") or "").split(" ")[0]
        or "匿名使用者"
    )

    role = app_metadata.get("role", UserRole.USER.value)
    if role not in [r.value for r in UserRole]:
        role = UserRole.USER.value

    return AppUser(
        id=str(supabase_user.id),
        email=getattr(supabase_user, "email", None),
        nickname=nickname,
        avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
        full_name=full_name,
        role=role,
        is_anonymous=is_anonymous,
        created_at=getattr(supabase_user, "created_at", None),
        last_active=datetime.now(timezone.utc),
    )

class SessionManager:
    """
    管理單一裝置的登入狀態

    以建構參數注入 Supabase 客戶端，不使用全域狀態。登入狀態改變時依序通知
    所有監聽者 (event, user)。
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase
        self._user: Optional[AppUser] = None
        self._session: Any = None
        self._listeners: List[SessionListener] = []

    def get_current_user(self) -> Optional[AppUser]:
        return self._user

    @property
    def session(self) -> Any:
        return self._session

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """
        註冊登入狀態監聽者

        Returns:
            取消註冊的函數
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self._user)
            except Exception as e:
                logger.error(f"登入狀態監聽者執行失敗 ({event}): {str(e)}")

    def _save_user_profile(self, user: AppUser) -> None:
        """以 id 為鍵 upsert 使用者資料，失敗只記錄錯誤"""
        try:
            self.supabase.table("users").upsert({
                "id": user.id,
                "email": user.email,
                "nickname": user.nickname,
                "avatar_url": user.avatar_url,
                "full_name": user.full_name,
                "is_anonymous": user.is_anonymous,
                "last_active": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="id").execute()
        except Exception as e:
            logger.error(f"使用者資料保存錯誤: {str(e)}")

    def _establish(self, supabase_user: Any, session: Any, event: str, is_anonymous: Optional[bool] = None) -> AppUser:
        user = convert_supabase_user(supabase_user, is_anonymous)
        self._user = user
        self._session = session
        self._save_user_profile(user)
        self._notify(event)
        return user

    def load_session(self, access_token: str) -> Optional[AppUser]:
        """
        以存取令牌取得目前使用者
        """
        try:
            response = self.supabase.auth.get_user(access_token)
        except Exception as e:
            logger.error(f"取得使用者失敗: {str(e)}")
            return None

        if not response or not response.user:
            return None
        return self._establish(response.user, None, INITIAL_SESSION)

    def restore_session(self) -> Optional[AppUser]:
        """
        讀取裝置上保存的登入階段，存在時視為 INITIAL_SESSION
        """
        try:
            session = self.supabase.auth.get_session()
        except Exception as e:
            logger.error(f"取得登入階段失敗: {str(e)}")
            return None

        if not session or not session.user:
            return None
        return self._establish(session.user, session, INITIAL_SESSION)

    def sign_in_with_google(self, redirect_to: str) -> str:
        """
        產生 Google OAuth 登入網址，登入完成後轉回 redirect_to
        """
        try:
            response = self.supabase.auth.sign_in_with_oauth({
                "provider": "google",
                "options": {
                    "redirect_to": redirect_to,
                    "query_params": {
                        "access_type": "offline",
                        "prompt": "consent",
                    },
                },
            })
        except Exception as e:
            logger.error(f"Google登入錯誤: {str(e)}")
            raise AuthError("Google登入失敗")
        return response.url

    def sign_in_anonymously(self, nickname: str) -> AppUser:
        nickname = nickname.strip()
        try:
            response = self.supabase.auth.sign_in_anonymously()
        except Exception as e:
            logger.error(f"匿名登入錯誤: {str(e)}")
            raise AuthError("匿名登入失敗")

        if not response or not response.user:
            raise AuthError("匿名登入失敗")

        try:
            self.supabase.auth.update_user({"data": {"nickname": nickname, "is_anonymous": True}})
        except Exception as e:
            logger.error(f"匿名使用者資料更新錯誤: {str(e)}")

        user = convert_supabase_user(response.user, is_anonymous=True)
        user.nickname = nickname
        self._user = user
        self._session = response.session
        self._save_user_profile(user)
        self._notify(SIGNED_IN)
        return user

    def exchange_code_for_session(self, code: str) -> AppUser:
        """
        以 OAuth 授權碼換取登入階段
        """
        try:
            response = self.supabase.auth.exchange_code_for_session({"auth_code": code})
        except Exception as e:
            logger.error(f"授權碼交換失敗: {str(e)}")
            raise AuthError("授權碼交換失敗")

        if not response or not response.user:
            raise AuthError("授權碼交換失敗")
        return self._establish(response.user, response.session, SIGNED_IN)

    def update_profile(
        self,
        nickname: Optional[str] = None,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> AppUser:
        if self._user is None:
            raise AuthError("使用者尚未登入")

        changes = {
            key: value for key, value in {
                "nickname": nickname,
                "full_name": full_name,
                "avatar_url": avatar_url,
            }.items() if value is not None
        }

        try:
            self.supabase.auth.update_user({"data": changes})
        except Exception as e:
            logger.error(f"個人資料更新錯誤: {str(e)}")
            raise AuthError("個人資料更新失敗")

        self._user = self._user.model_copy(update=changes)
        self._save_user_profile(self._user)
        self._notify(USER_UPDATED)
        return self._user

    def sign_out(self) -> None:
        """登出只清除本地狀態，後端帳號保留"""
        try:
            self.supabase.auth.sign_out()
        except Exception as e:
            logger.error(f"登出錯誤: {str(e)}")
            raise AuthError("登出失敗")
        finally:
            self._user = None
            self._session = None
        self._notify(SIGNED_OUT)

class FavoritesSync:
    """
    登入事件時把裝置收藏搬到資料庫，匿名使用者不搬移
    """

    def __init__(self, favorites: FavoritesService):
        self.favorites = favorites
        self.migrated = 0

    def __call__(self, event: str, user: Optional[AppUser]) -> None:
        if event not in (SIGNED_IN, INITIAL_SESSION) or user is None or user.is_anonymous:
            return
        result = self.favorites.migrate_local_favorites(user)
        if result:
            self.migrated += result

def attach_favorites_sync(session_manager: SessionManager, favorites: FavoritesService) -> FavoritesSync:
    sync = FavoritesSync(favorites)
    session_manager.on_session_change(sync)
    return sync
