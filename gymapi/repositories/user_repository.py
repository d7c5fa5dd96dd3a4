from typing import List, Optional

from sqlalchemy.orm import Session

from gymapi.models.user import User as UserModel
from gymapi.repositories.base import BaseRepository
from gymapi.schemas.user import UserBalance


class UserRepository(BaseRepository[UserModel, UserBalance]):
    """회원 잔액 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserBalance, db)

    def get_by_user_id(self, user_id: str) -> Optional[UserBalance]:
        model_instance = (
            self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        )
        return self._to_schema(model_instance)

    def get_for_update(self, user_id: str) -> Optional[UserModel]:
        """잔액 변경용 조회 - 트랜잭션 종료까지 행 잠금 (SELECT ... FOR UPDATE)"""
        return (
            self.db.query(UserModel)
            .filter(UserModel.user_id == user_id)
            .with_for_update()
            .first()
        )

    def get_many(self, user_ids: List[str]) -> List[UserModel]:
        if not user_ids:
            return []
        return self.db.query(UserModel).filter(UserModel.user_id.in_(user_ids)).all()
