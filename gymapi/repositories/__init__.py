# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .booking_repository import BookingRepository
from .market_repository import MarketRepository
from .transaction_repository import TransactionRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "BookingRepository",
    "MarketRepository",
    "TransactionRepository",
]
