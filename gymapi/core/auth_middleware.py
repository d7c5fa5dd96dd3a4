from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from gymapi.config import settings
from gymapi.core.exceptions import AuthenticationError, UnauthorizedError
from gymapi.schemas.auth import AuthenticatedUser

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> AuthenticatedUser:
    """외부 인증 제공자가 발급한 JWT 검증 (sub = 사용자 ID, role = 역할)"""
    try:
        payload = jwt.decode(
            token, settings.AUTH_JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")
    role = payload.get("role")
    return AuthenticatedUser(
        user_id=str(user_id), role=role, is_admin=role == settings.ADMIN_ROLE
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """필수 사용자 인증 - 유효한 토큰이 필요함"""
    if not credentials:
        raise AuthenticationError("Authentication required")
    return decode_access_token(credentials.credentials)


def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not current_user.is_admin:
        raise UnauthorizedError("Admin access required")
    return current_user
