import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from gymapi.config import Settings
from gymapi.schemas.cancellation import CancellationNotice

logger = logging.getLogger(__name__)

CANCEL_ADMIN_PATH = "/api/send-cancel-admin"
CANCEL_USER_PATH = "/api/send-cancel-user"
REFILL_PATH = "/api/send-refill-email"


class NotificationService:
    """메일 발송 엔드포인트 호출 - 실패해도 예외를 전파하지 않는다 (fire-and-forget)"""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = settings.NOTIFICATION_BASE_URL.rstrip("/")
        self.timeout = settings.NOTIFICATION_TIMEOUT_SECONDS
        self._transport = transport

    async def _post(self, path: str, payload: Dict[str, Any]) -> bool:
        if not self.base_url:
            logger.debug(f"Notification base URL not configured, skipping {path}")
            return False

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(path, json=payload)

            if response.status_code >= 300:
                logger.error(
                    f"Notification {path} failed: {response.status_code} {response.text}"
                )
                return False
            return True
        except httpx.TimeoutException:
            logger.error(f"Notification {path} timed out")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Notification {path} error: {str(e)}")
            return False

    async def send_cancellation(self, notice: CancellationNotice) -> bool:
        """관리자/회원 취소 알림 (둘 중 하나라도 실패하면 False)"""
        payload = notice.model_dump(mode="json")
        admin_sent = await self._post(CANCEL_ADMIN_PATH, payload)
        user_sent = await self._post(CANCEL_USER_PATH, payload)
        return admin_sent and user_sent

    async def send_cancellations(self, notices: Iterable[CancellationNotice]) -> None:
        for notice in notices:
            await self.send_cancellation(notice)

    async def send_refill(self, payload: Dict[str, Any]) -> bool:
        return await self._post(REFILL_PATH, payload)
