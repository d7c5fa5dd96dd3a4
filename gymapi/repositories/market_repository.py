from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from gymapi.models.catalog import MarketItem as MarketItemModel, MarketOrder
from gymapi.repositories.base import BaseRepository
from gymapi.schemas.market import MarketItemResponse


class MarketRepository(BaseRepository[MarketItemModel, MarketItemResponse]):
    """마켓 품목 및 주문 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(MarketItemModel, MarketItemResponse, db)

    def list_items(
        self, in_stock_only: bool = True, clothes: Optional[bool] = None
    ) -> List[MarketItemResponse]:
        query = self.db.query(MarketItemModel)
        if in_stock_only:
            query = query.filter(MarketItemModel.quantity > 0)
        if clothes is not None:
            query = query.filter(MarketItemModel.clothe.is_(clothes))
        return self._to_schemas(query.order_by(MarketItemModel.name).all())

    def get_items(self, item_ids: Iterable[int]) -> Dict[int, MarketItemResponse]:
        """ID 목록으로 품목 조회 - {id: 품목}"""
        ids = set(item_ids)
        if not ids:
            return {}
        rows = self.db.query(MarketItemModel).filter(MarketItemModel.id.in_(ids)).all()
        return {row.id: self._to_schema(row) for row in rows}

    def find_by_names(self, names: Iterable[str]) -> Dict[str, MarketItemResponse]:
        """이름(대소문자 무시)으로 품목 조회 - {소문자 이름: 품목}"""
        lowered = {name.lower() for name in names if name}
        if not lowered:
            return {}
        rows = (
            self.db.query(MarketItemModel)
            .filter(func.lower(MarketItemModel.name).in_(lowered))
            .order_by(MarketItemModel.id)
            .all()
        )
        found: Dict[str, MarketItemResponse] = {}
        for row in rows:
            found.setdefault(row.name.lower(), self._to_schema(row))
        return found

    def restock(self, item_id: int, quantity: int = 1) -> bool:
        """재고 증가 (단일 UPDATE 문)"""
        updated_count = (
            self.db.query(MarketItemModel)
            .filter(MarketItemModel.id == item_id)
            .update(
                {"quantity": MarketItemModel.quantity + quantity},
                synchronize_session="fetch",
            )
        )
        self.db.flush()
        return updated_count > 0

    def take_stock(self, item_id: int, quantity: int = 1) -> bool:
        """재고 차감 - 재고가 부족하면 아무것도 바꾸지 않고 False"""
        updated_count = (
            self.db.query(MarketItemModel)
            .filter(
                MarketItemModel.id == item_id,
                MarketItemModel.quantity >= quantity,
            )
            .update(
                {"quantity": MarketItemModel.quantity - quantity},
                synchronize_session="fetch",
            )
        )
        self.db.flush()
        return updated_count > 0

    def update_item(self, item_id: int, **changes) -> Optional[MarketItemResponse]:
        instance = self.db.get(MarketItemModel, item_id)
        if not instance:
            return None
        for key, value in changes.items():
            setattr(instance, key, value)
        self.db.flush()
        self.db.refresh(instance)
        return self._to_schema(instance)

    def delete_item(self, item_id: int) -> bool:
        instance = self.db.get(MarketItemModel, item_id)
        if not instance:
            return False
        self.db.delete(instance)
        self.db.flush()
        return True

    # 주문

    def create_order(self, user_id: str, item_ids: List[int], price) -> MarketOrder:
        order = MarketOrder(user_id=user_id, items=item_ids, price=price, claimed=False)
        self.db.add(order)
        self.db.flush()
        return order

    def list_orders(self, claimed: Optional[bool] = False) -> List[MarketOrder]:
        query = self.db.query(MarketOrder)
        if claimed is not None:
            query = query.filter(MarketOrder.claimed.is_(claimed))
        return query.order_by(MarketOrder.created_at.desc(), MarketOrder.id.desc()).all()

    def get_order(self, order_id: int) -> Optional[MarketOrder]:
        return self.db.get(MarketOrder, order_id)
