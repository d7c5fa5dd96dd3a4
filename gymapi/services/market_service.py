import logging
from collections import Counter
from typing import List, Optional

from sqlalchemy.orm import Session

from gymapi.core.exceptions import ConflictError, NotFoundError
from gymapi.database.session import atomic
from gymapi.repositories.market_repository import MarketRepository
from gymapi.repositories.user_repository import UserRepository
from gymapi.schemas.market import (
    MarketItemCreateRequest,
    MarketItemResponse,
    MarketItemUpdateRequest,
    MarketOrderResponse,
    OrderItemCount,
)

logger = logging.getLogger(__name__)


class MarketService:
    """마켓 카탈로그 및 주문 수령 관리"""

    def __init__(self, db: Session):
        self.db = db
        self.market_repo = MarketRepository(db)
        self.user_repo = UserRepository(db)

    def list_items(
        self, in_stock_only: bool = True, clothes: Optional[bool] = None
    ) -> List[MarketItemResponse]:
        return self.market_repo.list_items(in_stock_only=in_stock_only, clothes=clothes)

    def create_item(self, request: MarketItemCreateRequest) -> MarketItemResponse:
        with atomic(self.db):
            item = self.market_repo.add(**request.model_dump())
        logger.info(f"Created market item {item.id} ({item.name})")
        return MarketItemResponse.model_validate(item)

    def update_item(
        self, item_id: int, request: MarketItemUpdateRequest
    ) -> MarketItemResponse:
        changes = request.model_dump(exclude_unset=True)
        with atomic(self.db):
            item = self.market_repo.update_item(item_id, **changes)
            if item is None:
                raise NotFoundError(f"Market item not found: {item_id}")
        logger.info(f"Updated market item {item_id}: {sorted(changes)}")
        return item

    def delete_item(self, item_id: int) -> bool:
        with atomic(self.db):
            if not self.market_repo.delete_item(item_id):
                raise NotFoundError(f"Market item not found: {item_id}")
        logger.info(f"Deleted market item {item_id}")
        return True

    def list_orders(self, claimed: Optional[bool] = False) -> List[MarketOrderResponse]:
        """주문 목록 - 품목 ID를 이름/수량으로 묶어서 반환"""
        orders = self.market_repo.list_orders(claimed=claimed)
        item_ids = {item_id for order in orders for item_id in (order.items or [])}
        catalog = self.market_repo.get_items(item_ids)
        users = {
            u.user_id: u.full_name
            for u in self.user_repo.get_many(list({o.user_id for o in orders}))
        }

        responses = []
        for order in orders:
            counts = Counter(order.items or [])
            responses.append(
                MarketOrderResponse(
                    id=order.id,
                    user_id=order.user_id,
                    user_name=users.get(order.user_id, ""),
                    items=[
                        OrderItemCount(
                            item_id=item_id,
                            name=catalog[item_id].name if item_id in catalog else "Unknown item",
                            quantity=quantity,
                        )
                        for item_id, quantity in counts.items()
                    ],
                    price=order.price,
                    claimed=order.claimed,
                    created_at=order.created_at,
                )
            )
        return responses

    def claim_order(self, order_id: int) -> bool:
        with atomic(self.db):
            order = self.market_repo.get_order(order_id)
            if order is None:
                raise NotFoundError(f"Order not found: {order_id}")
            if order.claimed:
                raise ConflictError("Order already claimed")
            order.claimed = True
        logger.info(f"Order {order_id} claimed")
        return True
