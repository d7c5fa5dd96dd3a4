import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from gymapi.core.exceptions import ConflictError, StoreWriteError
from gymapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """하나의 원장 작업(예약 취소, 구매 등)을 단일 트랜잭션으로 묶는다.

    블록이 정상 종료되면 커밋하고, 예외가 발생하면 모든 변경을 롤백한다.
    저장소 예외는 API 예외로 변환된다.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification detected: {str(e)}")
        raise ConflictError(
            "The booking was modified by another request, please retry"
        ) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store write failed, transaction rolled back: {str(e)}")
        raise StoreWriteError(details={"reason": str(e)}) from e
    except Exception:
        db.rollback()
        raise
