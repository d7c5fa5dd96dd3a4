from typing import Optional

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Bearer 토큰에서 추출한 호출자 정보"""

    user_id: str
    role: Optional[str] = None
    is_admin: bool = False
