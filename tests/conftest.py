import os
import sys
from datetime import date, time
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root is on path for `gymapi` imports
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

from gymapi.models.base import Base  # noqa: E402
from gymapi.models.booking import GroupParticipant, GroupTimeSlot, TimeSlot  # noqa: E402
from gymapi.models.catalog import Activity, Coach, MarketItem  # noqa: E402
from gymapi.models.transaction import Transaction  # noqa: E402
from gymapi.models.user import User  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def factory(db):
    return Factory(db)


class Factory:
    """테스트 데이터 생성 헬퍼 - 생성 즉시 커밋"""

    def __init__(self, db):
        self.db = db

    def _save(self, instance):
        self.db.add(instance)
        self.db.commit()
        return instance

    def user(self, user_id: str = "user-1", **overrides) -> User:
        values = dict(
            user_id=user_id,
            first_name="Test",
            last_name=user_id,
            email=f"{user_id}@example.com",
            wallet=Decimal("100"),
        )
        values.update(overrides)
        return self._save(User(**values))

    def activity(self, **overrides) -> Activity:
        values = dict(
            name="Private Training",
            credits=Decimal("50"),
            capacity=1,
            semi_private=False,
        )
        values.update(overrides)
        return self._save(Activity(**values))

    def coach(self, **overrides) -> Coach:
        values = dict(name="Coach Kim", email="coach@example.com")
        values.update(overrides)
        return self._save(Coach(**values))

    def item(self, name: str = "Water Bottle", price="2", quantity: int = 10, **overrides) -> MarketItem:
        return self._save(
            MarketItem(name=name, price=Decimal(price), quantity=quantity, **overrides)
        )

    def slot(self, activity=None, coach=None, **overrides) -> TimeSlot:
        activity = activity or self.activity()
        coach = coach or self.coach()
        values = dict(
            activity_id=activity.id,
            coach_id=coach.id,
            date=date(2030, 1, 15),
            start_time=time(9, 0),
            end_time=time(10, 0),
            booked=False,
            booked_with_token=False,
            additions=[],
        )
        values.update(overrides)
        return self._save(TimeSlot(**values))

    def group_slot(self, activity=None, coach=None, participants=(), **overrides) -> GroupTimeSlot:
        """participants: (user_id, booked_with_token, additions) 목록"""
        activity = activity or self.activity(name="Group Class", capacity=4)
        coach = coach or self.coach()
        values = dict(
            activity_id=activity.id,
            coach_id=coach.id,
            date=date(2030, 1, 15),
            start_time=time(18, 0),
            end_time=time(19, 0),
        )
        values.update(overrides)
        slot = GroupTimeSlot(count=0, booked=False, **values)
        for user_id, with_token, additions in participants:
            slot.participants.append(
                GroupParticipant(
                    user_id=user_id,
                    booked_with_token=with_token,
                    additions=list(additions),
                )
            )
        slot.sync_occupancy(activity.capacity)
        return self._save(slot)

    def transactions(self, user_id: str = None):
        query = self.db.query(Transaction)
        if user_id:
            query = query.filter(Transaction.user_id == user_id)
        return query.order_by(Transaction.id).all()


def addition(item, used_token: bool = False) -> dict:
    """저장 형식의 추가 품목 행"""
    return {
        "item_id": item.id,
        "name": item.name,
        "price": str(item.price),
        "used_token": used_token,
    }


class FakeNotifier:
    """발송 대신 호출 내역만 기록"""

    def __init__(self):
        self.cancellations = []
        self.refills = []

    async def send_cancellations(self, notices):
        self.cancellations.extend(notices)

    async def send_refill(self, payload):
        self.refills.append(payload)
        return True


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def app(db, notifier, monkeypatch):
    from dependency_injector import providers

    from gymapi.config import settings
    from gymapi.database.session import get_db
    from gymapi.main import create_app

    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", "test-secret")
    application = create_app()
    application.dependency_overrides[get_db] = lambda: db
    container = application.container  # type: ignore
    container.services.notification_service.override(providers.Object(notifier))
    yield application
    container.services.notification_service.reset_override()
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


def auth_headers(user_id: str, role: str = "member") -> dict:
    from jose import jwt

    token = jwt.encode({"sub": user_id, "role": role}, "test-secret", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}
