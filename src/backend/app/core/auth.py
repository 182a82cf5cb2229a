# app/core/auth.py
# 認証は上流のゲートウェイが担当する．このサービスはゲートウェイが付与したヘッダーを信頼するだけ．
from dataclasses import dataclass
from enum import Enum
from fastapi import Header
from app.core.errors import PermissionDeniedError

class UserRole(str, Enum):
    USER = 'user'
    MODERATOR = 'moderator'
    ADMIN = 'admin'

@dataclass(frozen=True)
class CurrentUser:
    user_id: str | None
    display_name: str | None = None
    role: UserRole = UserRole.USER

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def is_moderator(self) -> bool:
        # 管理者はモデレーター権限を含む．
        return self.role in (UserRole.MODERATOR, UserRole.ADMIN)

def get_current_user(
        x_user_id: str | None = Header(default=None),
        x_user_name: str | None = Header(default=None),
        x_user_role: str | None = Header(default=None)) -> CurrentUser:
    try:
        role = UserRole(x_user_role) if x_user_role else UserRole.USER
    except ValueError:
        role = UserRole.USER # 未知のロールは一般ユーザー扱い
    return CurrentUser(user_id=x_user_id, display_name=x_user_name, role=role)

def require_user(user: CurrentUser) -> CurrentUser:
    if not user.is_authenticated:
        raise PermissionDeniedError("ログインが必要です．")
    return user

def require_moderator(user: CurrentUser) -> CurrentUser:
    require_user(user)
    if not user.is_moderator:
        raise PermissionDeniedError("モデレーター権限が必要です．")
    return user
