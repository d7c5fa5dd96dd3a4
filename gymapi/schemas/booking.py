import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gymapi.schemas.ledger import AdditionLine


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    credits: Decimal
    capacity: int
    semi_private: bool


class CoachResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None


class TimeSlotResponse(BaseModel):
    """개인 세션 슬롯"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    activity: ActivityResponse
    coach: CoachResponse
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    user_id: Optional[str] = None
    booked: bool
    booked_with_token: bool
    additions: List[AdditionLine] = Field(default_factory=list)

    @field_validator("additions", mode="before")
    @classmethod
    def _legacy_names(cls, value):
        # 이름만 저장된 이전 행 지원
        return [{"name": v} if isinstance(v, str) else v for v in (value or [])]


class GroupAdditions(BaseModel):
    user_id: str
    items: List[AdditionLine] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _legacy_names(cls, value):
        return [{"name": v} if isinstance(v, str) else v for v in (value or [])]


class GroupTimeSlotResponse(BaseModel):
    """그룹 세션 슬롯 (참가자 목록은 리스트 필드로 노출)"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    activity: ActivityResponse
    coach: CoachResponse
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    count: int
    booked: bool
    user_id: List[str] = Field(default_factory=list, validation_alias="user_ids")
    booked_with_token: List[str] = Field(
        default_factory=list, validation_alias="token_user_ids"
    )
    additions: List[GroupAdditions] = Field(
        default_factory=list, validation_alias="additions_by_user"
    )


class TimeSlotCreateRequest(BaseModel):
    activity_id: int
    coach_id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time

    @model_validator(mode="after")
    def _check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingResult(BaseModel):
    success: bool = True
    message: str
    slot_id: int
    paid_with: str = Field(..., description="credits | token | free")
    amount: Decimal = Decimal("0")


class UpcomingReservations(BaseModel):
    individual: List[TimeSlotResponse] = Field(default_factory=list)
    group: List[GroupTimeSlotResponse] = Field(default_factory=list)
