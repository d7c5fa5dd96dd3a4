"""
마켓 API 라우터

사용자용 엔드포인트:
- GET /market/items: 판매 중인 품목
- POST /market/checkout: 매장/의류 주문 결제

관리자용 엔드포인트:
- POST/PATCH/DELETE /market/admin/items: 카탈로그 관리
- GET /market/admin/orders: 수령 대기 주문
- POST /market/admin/orders/{order_id}/claim: 주문 수령 처리
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from gymapi.core.auth_middleware import get_current_user, require_admin
from gymapi.deps import get_market_service, get_purchase_service
from gymapi.schemas.auth import AuthenticatedUser
from gymapi.schemas.market import (
    CheckoutRequest,
    MarketItemCreateRequest,
    MarketItemResponse,
    MarketItemUpdateRequest,
    MarketOrderResponse,
    PurchaseResult,
)
from gymapi.services.market_service import MarketService
from gymapi.services.purchase_service import PurchaseService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/market", tags=["market"])


@router.get("/items", response_model=List[MarketItemResponse])
async def list_items(
    clothes: Optional[bool] = Query(None, description="의류만(true) / 의류 제외(false)"),
    _: AuthenticatedUser = Depends(get_current_user),
    market_service: MarketService = Depends(get_market_service),
) -> List[MarketItemResponse]:
    return market_service.list_items(in_stock_only=True, clothes=clothes)


@router.post("/checkout", response_model=PurchaseResult)
async def checkout(
    request: CheckoutRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    purchase_service: PurchaseService = Depends(get_purchase_service),
) -> PurchaseResult:
    """장바구니 결제 - 프로틴 품목은 쉐이크 토큰 우선 사용"""
    return purchase_service.handle_purchase(current_user.user_id, request)


@router.get("/admin/items", response_model=List[MarketItemResponse])
async def list_all_items(
    _: AuthenticatedUser = Depends(require_admin),
    market_service: MarketService = Depends(get_market_service),
) -> List[MarketItemResponse]:
    return market_service.list_items(in_stock_only=False)


@router.post("/admin/items", response_model=MarketItemResponse)
async def create_item(
    request: MarketItemCreateRequest,
    _: AuthenticatedUser = Depends(require_admin),
    market_service: MarketService = Depends(get_market_service),
) -> MarketItemResponse:
    return market_service.create_item(request)


@router.patch("/admin/items/{item_id}", response_model=MarketItemResponse)
async def update_item(
    request: MarketItemUpdateRequest,
    item_id: int = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    market_service: MarketService = Depends(get_market_service),
) -> MarketItemResponse:
    return market_service.update_item(item_id, request)


@router.delete("/admin/items/{item_id}")
async def delete_item(
    item_id: int = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    market_service: MarketService = Depends(get_market_service),
) -> dict:
    return {"success": market_service.delete_item(item_id)}


@router.get("/admin/orders", response_model=List[MarketOrderResponse])
async def list_orders(
    claimed: Optional[bool] = Query(False, description="수령 여부 필터 (생략 시 미수령)"),
    _: AuthenticatedUser = Depends(require_admin),
    market_service: MarketService = Depends(get_market_service),
) -> List[MarketOrderResponse]:
    return market_service.list_orders(claimed=claimed)


@router.post("/admin/orders/{order_id}/claim")
async def claim_order(
    order_id: int = Path(...),
    admin: AuthenticatedUser = Depends(require_admin),
    market_service: MarketService = Depends(get_market_service),
) -> dict:
    logger.info(f"Admin {admin.user_id} claiming order {order_id}")
    return {"success": market_service.claim_order(order_id)}
