from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from gymapi.models.booking import GroupParticipant, GroupTimeSlot, TimeSlot
from gymapi.models.catalog import Activity, Coach
from gymapi.repositories.base import BaseRepository
from gymapi.schemas.booking import GroupTimeSlotResponse, TimeSlotResponse


class BookingRepository(BaseRepository[TimeSlot, TimeSlotResponse]):
    """개인/그룹 세션 슬롯 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(TimeSlot, TimeSlotResponse, db)

    def to_group_schema(self, slot: GroupTimeSlot) -> GroupTimeSlotResponse:
        return GroupTimeSlotResponse.model_validate(slot)

    def get_slot(self, slot_id: int) -> Optional[TimeSlot]:
        return self.db.get(TimeSlot, slot_id)

    def get_group_slot(self, slot_id: int) -> Optional[GroupTimeSlot]:
        return self.db.get(GroupTimeSlot, slot_id)

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        return self.db.get(Activity, activity_id)

    def get_coach(self, coach_id: int) -> Optional[Coach]:
        return self.db.get(Coach, coach_id)

    def upcoming_for_user(
        self, user_id: str, from_date: date
    ) -> List[TimeSlotResponse]:
        """오늘 이후 개인 예약"""
        slots = (
            self.db.query(TimeSlot)
            .filter(TimeSlot.user_id == user_id, TimeSlot.date >= from_date)
            .order_by(TimeSlot.date, TimeSlot.start_time)
            .all()
        )
        return self._to_schemas(slots)

    def upcoming_group_for_user(
        self, user_id: str, from_date: date
    ) -> List[GroupTimeSlotResponse]:
        """오늘 이후 그룹 예약"""
        slots = (
            self.db.query(GroupTimeSlot)
            .join(GroupParticipant, GroupParticipant.slot_id == GroupTimeSlot.id)
            .filter(
                GroupParticipant.user_id == user_id,
                GroupTimeSlot.date >= from_date,
            )
            .order_by(GroupTimeSlot.date, GroupTimeSlot.start_time)
            .all()
        )
        return [self.to_group_schema(slot) for slot in slots]

    def add_group_slot(self, **kwargs) -> GroupTimeSlot:
        slot = GroupTimeSlot(count=0, booked=False, **kwargs)
        self.db.add(slot)
        self.db.flush()
        return slot

    def delete(self, instance) -> None:
        self.db.delete(instance)
        self.db.flush()
