"""
기본 데이터 시드 스크립트
액티비티, 코치, 마켓 품목, 테스트 회원을 초기 데이터로 설정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decimal import Decimal

from gymapi.database.connection import SessionLocal
from gymapi.models.catalog import Activity, Coach, MarketItem
from gymapi.models.user import User

# (이름, 크레딧, 정원, semi-private 여부)
DEFAULT_ACTIVITIES = [
    ("Private Training", Decimal("30"), 1, False),
    ("Semi-Private Training", Decimal("25"), 4, True),
    ("Group Class", Decimal("25"), 12, False),
    ("Workout Day", Decimal("20"), 20, False),
]

DEFAULT_COACHES = [
    ("Alex Morgan", "alex@studio.example"),
    ("Sam Rivera", "sam@studio.example"),
]

# (이름, 가격, 재고, 의류 여부)
DEFAULT_MARKET_ITEMS = [
    ("Protein Shake", Decimal("5"), 100, False),
    ("Protein Pudding", Decimal("4"), 60, False),
    ("Water Bottle", Decimal("2"), 200, False),
    ("Towel", Decimal("3"), 50, False),
    ("Studio T-Shirt", Decimal("25"), 30, True),
]


def _seed(db, model, rows, key, build):
    added = 0
    for row in rows:
        if db.query(model).filter(getattr(model, key) == row[0]).first():
            print(f"⏭️  이미 존재: {row[0]}")
            continue
        db.add(build(*row))
        added += 1
    return added


def seed_catalog():
    """액티비티/코치/마켓 품목 시드"""
    db = SessionLocal()
    try:
        activities = _seed(
            db,
            Activity,
            DEFAULT_ACTIVITIES,
            "name",
            lambda name, credits, capacity, semi: Activity(
                name=name, credits=credits, capacity=capacity, semi_private=semi
            ),
        )
        coaches = _seed(
            db,
            Coach,
            DEFAULT_COACHES,
            "name",
            lambda name, email: Coach(name=name, email=email),
        )
        items = _seed(
            db,
            MarketItem,
            DEFAULT_MARKET_ITEMS,
            "name",
            lambda name, price, quantity, clothe: MarketItem(
                name=name, price=price, quantity=quantity, clothe=clothe
            ),
        )
        db.commit()
        print(f"✅ 카탈로그 시드 완료: 액티비티 {activities}, 코치 {coaches}, 품목 {items}")
    except Exception as e:
        db.rollback()
        print(f"❌ 카탈로그 시드 실패: {str(e)}")
        raise
    finally:
        db.close()


def seed_users():
    """테스트 회원 시드"""
    db = SessionLocal()
    try:
        if db.query(User).filter(User.user_id == "demo-user").first():
            print("⏭️  이미 존재: demo-user")
            return
        db.add(
            User(
                user_id="demo-user",
                first_name="Demo",
                last_name="Member",
                email="demo@studio.example",
                wallet=Decimal("100"),
                private_token=2,
                public_token=5,
                shake_token=1,
            )
        )
        db.commit()
        print("✅ 테스트 회원 생성: demo-user")
    except Exception as e:
        db.rollback()
        print(f"❌ 회원 시드 실패: {str(e)}")
        raise
    finally:
        db.close()


def main():
    print("🌱 시드 데이터 생성을 시작합니다...")
    seed_catalog()
    seed_users()
    print("🎉 모든 시드 데이터 생성이 완료되었습니다!")


if __name__ == "__main__":
    main()
