import logging
from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, BackgroundTasks, Depends, Path

from gymapi.containers import Container
from gymapi.core.auth_middleware import get_current_user, require_admin
from gymapi.deps import (
    get_booking_service,
    get_cancellation_service,
    get_purchase_service,
)
from gymapi.schemas.auth import AuthenticatedUser
from gymapi.schemas.booking import (
    BookingResult,
    GroupTimeSlotResponse,
    TimeSlotCreateRequest,
    TimeSlotResponse,
    UpcomingReservations,
)
from gymapi.schemas.cancellation import CancellationResult, CancellationNotice
from gymapi.schemas.market import AdditionsPurchaseRequest, PurchaseResult
from gymapi.services.booking_service import BookingService
from gymapi.services.cancellation_service import CancellationService
from gymapi.services.notification_service import NotificationService
from gymapi.services.purchase_service import PurchaseService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _schedule_notifications(
    background_tasks: BackgroundTasks,
    notifier: NotificationService,
    result: CancellationResult,
) -> None:
    # 커밋 이후에만 발송
    if result.success and result.notifications:
        notices: List[CancellationNotice] = list(result.notifications)
        background_tasks.add_task(notifier.send_cancellations, notices)


@router.get("/me", response_model=UpcomingReservations)
async def my_reservations(
    current_user: AuthenticatedUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> UpcomingReservations:
    """내 예정된 예약 (오늘 이후)"""
    return booking_service.list_upcoming(current_user.user_id)


@router.post("/individual/{slot_id}", response_model=BookingResult)
async def book_individual(
    slot_id: int = Path(..., description="개인 세션 슬롯 ID"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResult:
    return booking_service.book_individual(slot_id, current_user.user_id)


@router.post("/group/{slot_id}", response_model=BookingResult)
async def book_group(
    slot_id: int = Path(..., description="그룹 세션 슬롯 ID"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResult:
    return booking_service.book_group(slot_id, current_user.user_id)


@router.post("/individual/{slot_id}/cancel", response_model=CancellationResult)
@inject
async def cancel_individual(
    background_tasks: BackgroundTasks,
    slot_id: int = Path(..., description="개인 세션 슬롯 ID"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    cancellation_service: CancellationService = Depends(get_cancellation_service),
    notifier: NotificationService = Depends(
        Provide[Container.services.notification_service]
    ),
) -> CancellationResult:
    """개인 세션 취소 - 실패해도 200과 success=false로 응답"""
    result = cancellation_service.cancel_individual(slot_id, current_user.user_id)
    _schedule_notifications(background_tasks, notifier, result)
    return result


@router.post("/group/{slot_id}/cancel", response_model=CancellationResult)
@inject
async def cancel_group(
    background_tasks: BackgroundTasks,
    slot_id: int = Path(..., description="그룹 세션 슬롯 ID"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    cancellation_service: CancellationService = Depends(get_cancellation_service),
    notifier: NotificationService = Depends(
        Provide[Container.services.notification_service]
    ),
) -> CancellationResult:
    """그룹 세션에서 본인 예약만 취소"""
    result = cancellation_service.cancel_group(slot_id, current_user.user_id)
    _schedule_notifications(background_tasks, notifier, result)
    return result


@router.post("/individual/{slot_id}/items", response_model=PurchaseResult)
async def buy_individual_items(
    request: AdditionsPurchaseRequest,
    slot_id: int = Path(..., description="개인 세션 슬롯 ID"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    purchase_service: PurchaseService = Depends(get_purchase_service),
) -> PurchaseResult:
    return purchase_service.pay_for_items(
        slot_id, current_user.user_id, request.item_ids
    )


@router.post("/group/{slot_id}/items", response_model=PurchaseResult)
async def buy_group_items(
    request: AdditionsPurchaseRequest,
    slot_id: int = Path(..., description="그룹 세션 슬롯 ID"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    purchase_service: PurchaseService = Depends(get_purchase_service),
) -> PurchaseResult:
    return purchase_service.pay_for_group_items(
        slot_id, current_user.user_id, request.item_ids
    )


# 관리자 전용 엔드포인트
@router.post("/admin/slots", response_model=TimeSlotResponse)
async def create_slot(
    request: TimeSlotCreateRequest,
    _: AuthenticatedUser = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> TimeSlotResponse:
    return booking_service.create_slot(request)


@router.post("/admin/group-slots", response_model=GroupTimeSlotResponse)
async def create_group_slot(
    request: TimeSlotCreateRequest,
    _: AuthenticatedUser = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> GroupTimeSlotResponse:
    return booking_service.create_group_slot(request)


@router.delete("/admin/slots/{slot_id}")
async def delete_slot(
    slot_id: int = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> dict:
    return {"success": booking_service.delete_slot(slot_id)}


@router.delete("/admin/group-slots/{slot_id}")
async def delete_group_slot(
    slot_id: int = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> dict:
    return {"success": booking_service.delete_group_slot(slot_id)}


@router.post("/admin/individual/{slot_id}/book/{user_id}", response_model=BookingResult)
async def book_individual_for_client(
    slot_id: int = Path(...),
    user_id: str = Path(..., description="예약할 회원 ID"),
    admin: AuthenticatedUser = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResult:
    logger.info(f"Admin {admin.user_id} booking slot {slot_id} for {user_id}")
    return booking_service.book_individual(slot_id, user_id)


@router.post("/admin/group/{slot_id}/book/{user_id}", response_model=BookingResult)
async def book_group_for_client(
    slot_id: int = Path(...),
    user_id: str = Path(..., description="예약할 회원 ID"),
    admin: AuthenticatedUser = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResult:
    logger.info(f"Admin {admin.user_id} booking group slot {slot_id} for {user_id}")
    return booking_service.book_group(slot_id, user_id)


@router.post("/admin/individual/{slot_id}/cancel", response_model=CancellationResult)
@inject
async def cancel_individual_as_admin(
    background_tasks: BackgroundTasks,
    slot_id: int = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    cancellation_service: CancellationService = Depends(get_cancellation_service),
    notifier: NotificationService = Depends(
        Provide[Container.services.notification_service]
    ),
) -> CancellationResult:
    result = cancellation_service.cancel_individual_as_admin(slot_id)
    _schedule_notifications(background_tasks, notifier, result)
    return result


@router.post("/admin/group/{slot_id}/cancel-all", response_model=CancellationResult)
@inject
async def cancel_group_for_all(
    background_tasks: BackgroundTasks,
    slot_id: int = Path(...),
    _: AuthenticatedUser = Depends(require_admin),
    cancellation_service: CancellationService = Depends(get_cancellation_service),
    notifier: NotificationService = Depends(
        Provide[Container.services.notification_service]
    ),
) -> CancellationResult:
    """그룹 세션 전체 취소 - 모든 참가자 환불 후 슬롯 비움"""
    result = cancellation_service.cancel_group_for_all(slot_id)
    _schedule_notifications(background_tasks, notifier, result)
    return result
