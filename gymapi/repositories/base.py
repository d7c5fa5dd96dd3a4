from abc import ABC
from typing import TypeVar, Generic, Optional, List, Any, Type
from sqlalchemy.orm import Session
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    쓰기 메서드는 커밋하지 않는다. 트랜잭션 경계는 서비스 계층의 atomic()이 관리한다.
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    def _to_schemas(self, model_instances: List[Any]) -> List[SchemaType]:
        return [self._to_schema(instance) for instance in model_instances]

    def add(self, **kwargs) -> T:
        """새 ORM 객체를 세션에 추가하고 flush"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        self.db.flush()
        return instance
