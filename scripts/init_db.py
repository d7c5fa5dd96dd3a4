import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gymapi.database.connection import engine
from gymapi.models.base import Base

# 모든 테이블을 메타데이터에 등록
from gymapi.models import booking, catalog, transaction, user  # noqa: F401


def init_db():
    """데이터베이스 테이블 생성"""
    try:
        Base.metadata.create_all(bind=engine)
        print(f"Database initialized: {', '.join(sorted(Base.metadata.tables))}")
    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
