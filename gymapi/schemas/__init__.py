from .ledger import AdditionLine, RefundPlan, PurchaseCharges, TransactionDraft
from .user import UserBalance
from .booking import TimeSlotResponse, GroupTimeSlotResponse
from .market import MarketItemResponse
from .transaction import TransactionResponse
from .cancellation import CancellationResult
