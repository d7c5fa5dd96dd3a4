from fastapi import Depends
from sqlalchemy.orm import Session

from gymapi.database.session import get_db

# Services
from gymapi.services.booking_service import BookingService
from gymapi.services.bundle_service import BundleService
from gymapi.services.cancellation_service import CancellationService
from gymapi.services.market_service import MarketService
from gymapi.services.purchase_service import PurchaseService
from gymapi.services.transaction_service import TransactionService
from gymapi.services.wallet_service import WalletService


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db=db)


def get_cancellation_service(db: Session = Depends(get_db)) -> CancellationService:
    return CancellationService(db=db)


def get_purchase_service(db: Session = Depends(get_db)) -> PurchaseService:
    return PurchaseService(db=db)


def get_market_service(db: Session = Depends(get_db)) -> MarketService:
    return MarketService(db=db)


def get_bundle_service(db: Session = Depends(get_db)) -> BundleService:
    return BundleService(db=db)


def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    return WalletService(db=db)


def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    return TransactionService(db=db)
