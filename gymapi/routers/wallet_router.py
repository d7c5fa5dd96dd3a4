import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, BackgroundTasks, Depends, Path

from gymapi.containers import Container
from gymapi.core.auth_middleware import get_current_user, require_admin
from gymapi.deps import get_bundle_service, get_wallet_service
from gymapi.schemas.auth import AuthenticatedUser
from gymapi.schemas.bundle import (
    BundleCatalogResponse,
    BundlePurchaseRequest,
    BundlePurchaseResult,
)
from gymapi.schemas.user import (
    AdminBalanceUpdateRequest,
    FreeStatusRequest,
    UserBalance,
    UserCreate,
)
from gymapi.services.bundle_service import BundleService
from gymapi.services.notification_service import NotificationService
from gymapi.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/me", response_model=UserBalance)
async def my_balance(
    current_user: AuthenticatedUser = Depends(get_current_user),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> UserBalance:
    """내 크레딧/토큰/펀치 잔액"""
    return wallet_service.get_balance(current_user.user_id)


@router.get("/bundles", response_model=BundleCatalogResponse)
async def list_bundles(
    _: AuthenticatedUser = Depends(get_current_user),
    bundle_service: BundleService = Depends(get_bundle_service),
) -> BundleCatalogResponse:
    return bundle_service.list_bundles()


@router.post("/bundles", response_model=BundlePurchaseResult)
async def purchase_bundle(
    request: BundlePurchaseRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    bundle_service: BundleService = Depends(get_bundle_service),
) -> BundlePurchaseResult:
    return bundle_service.purchase_bundle(current_user.user_id, request.code)


@router.post("/bundles/essentials", response_model=BundlePurchaseResult)
async def purchase_essentials(
    current_user: AuthenticatedUser = Depends(get_current_user),
    bundle_service: BundleService = Depends(get_bundle_service),
) -> BundlePurchaseResult:
    """Essentials 멤버십 1개월 연장"""
    return bundle_service.purchase_essentials(current_user.user_id)


@router.post("/admin/users", response_model=UserBalance, status_code=201)
async def register_member(
    request: UserCreate,
    _: AuthenticatedUser = Depends(require_admin),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> UserBalance:
    """가입한 회원의 잔액 레코드 생성"""
    return wallet_service.register_member(request)


@router.get("/admin/users/{user_id}", response_model=UserBalance)
async def get_user_balance(
    user_id: str = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> UserBalance:
    return wallet_service.get_balance(user_id)


@router.put("/admin/users/{user_id}", response_model=UserBalance)
@inject
async def update_user_balance(
    request: AdminBalanceUpdateRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Path(...),
    admin: AuthenticatedUser = Depends(require_admin),
    wallet_service: WalletService = Depends(get_wallet_service),
    notifier: NotificationService = Depends(
        Provide[Container.services.notification_service]
    ),
) -> UserBalance:
    """관리자 잔액 조정 - 커밋 후 충전 안내 메일 발송"""
    balance, payload = wallet_service.admin_update_balance(user_id, request)
    logger.info(f"Admin {admin.user_id} updated wallet of {user_id}")
    background_tasks.add_task(notifier.send_refill, payload)
    return balance


@router.put("/admin/users/{user_id}/free", response_model=UserBalance)
async def update_free_status(
    request: FreeStatusRequest,
    user_id: str = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    wallet_service: WalletService = Depends(get_wallet_service),
) -> UserBalance:
    return wallet_service.set_free_status(user_id, request.is_free)
