from pydantic import BaseModel, Field, computed_field
from typing import Optional, List
from datetime import datetime
from enum import Enum

class UserRole(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

class AppUser(BaseModel):
    id: str
    email: Optional[str] = None
    nickname: str = "匿名使用者"
    avatar_url: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_anonymous: bool = False
    created_at: Optional[datetime] = None
    last_active: Optional[datetime] = None

    @computed_field
    @property
    def security_level(self) -> int:
        """管理員 3、版主 2、已登入使用者 1、匿名 0"""
        if self.role == UserRole.ADMIN:
            return 3
        if self.role == UserRole.MODERATOR:
            return 2
        if self.is_anonymous:
            return 0
        return 1

class AnonymousSignInRequest(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=50)

class UserProfileUpdate(BaseModel):
    nickname: Optional[str] = Field(None, min_length=1, max_length=50)
    full_name: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)

class SessionResponse(BaseModel):
    user: Optional[AppUser] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    favorites_migrated: int = 0

class OAuthUrlResponse(BaseModel):
    url: str

class FavoritesResponse(BaseModel):
    shop_ids: List[int]
    source: str  # "local" 或 "remote"

class FavoriteToggleResponse(BaseModel):
    shop_id: int
    is_favorite: bool

class FavoritesMigrationRequest(BaseModel):
    shop_ids: Optional[List[int]] = None

class FavoritesMigrationResponse(BaseModel):
    success: bool
    migrated: int
