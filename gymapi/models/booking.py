"""
예약 데이터 모델

- TimeSlot: 개인 세션. user_id가 NULL이면 예약되지 않은 슬롯
- GroupTimeSlot: 그룹 세션. 참가자는 GroupParticipant 행으로 관리
- 두 슬롯 모두 version 컬럼으로 낙관적 잠금(compare-and-swap)을 수행한다

additions 항목 형식: {"item_id", "name", "price", "used_token"}
(이전 데이터에는 품목 이름 문자열만 저장된 행이 남아 있을 수 있음)
"""

import datetime as dt
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Integer,
    JSON,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gymapi.models.base import BaseModel
from gymapi.models.catalog import Activity, Coach


class TimeSlot(BaseModel):
    __tablename__ = "time_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("activities.id"), nullable=False
    )
    coach_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("coaches.id"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)

    user_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("users.user_id"), nullable=True, index=True
    )
    booked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    booked_with_token: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    additions: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    activity: Mapped[Activity] = relationship(Activity, lazy="joined")
    coach: Mapped[Coach] = relationship(Coach, lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    def release(self) -> None:
        """예약 정보를 비워 미예약 상태로 되돌린다"""
        self.user_id = None
        self.booked = False
        self.booked_with_token = False
        self.additions = []


class GroupParticipant(BaseModel):
    __tablename__ = "group_slot_participants"
    __table_args__ = (
        UniqueConstraint("slot_id", "user_id", name="uq_group_participant"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("group_time_slots.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.user_id"), nullable=False
    )
    booked_with_token: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    additions: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)

    slot: Mapped["GroupTimeSlot"] = relationship(
        "GroupTimeSlot", back_populates="participants"
    )


class GroupTimeSlot(BaseModel):
    __tablename__ = "group_time_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("activities.id"), nullable=False
    )
    coach_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("coaches.id"), nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)

    # sync_occupancy()로만 갱신한다
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    booked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    activity: Mapped[Activity] = relationship(Activity, lazy="joined")
    coach: Mapped[Coach] = relationship(Coach, lazy="joined")
    participants: Mapped[List[GroupParticipant]] = relationship(
        GroupParticipant,
        back_populates="slot",
        cascade="all, delete-orphan",
        order_by=GroupParticipant.id,
    )

    __mapper_args__ = {"version_id_col": version}

    def find_participant(self, user_id: str) -> Optional[GroupParticipant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def sync_occupancy(self, capacity: int) -> None:
        """count = 참가자 수, booked = 정원 도달 여부"""
        self.count = len(self.participants)
        self.booked = self.count >= capacity

    @property
    def user_ids(self) -> List[str]:
        return [p.user_id for p in self.participants]

    @property
    def token_user_ids(self) -> List[str]:
        return [p.user_id for p in self.participants if p.booked_with_token]

    @property
    def additions_by_user(self) -> List[Dict[str, Any]]:
        return [
            {"user_id": p.user_id, "items": list(p.additions or [])}
            for p in self.participants
            if p.additions
        ]
