from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class BundleResponse(BaseModel):
    code: str
    name: str
    price: Decimal
    grants: Dict[str, int] = Field(default_factory=dict)


class BundleCatalogResponse(BaseModel):
    bundles: List[BundleResponse] = Field(default_factory=list)
    essentials_price: Decimal


class BundlePurchaseRequest(BaseModel):
    code: str = Field(..., min_length=1, description="번들 코드")


class BundlePurchaseResult(BaseModel):
    success: bool = True
    message: str
    wallet: Decimal
    essential_till: Optional[datetime] = None
