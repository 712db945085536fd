from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.modules.articles.schemas import Variant
from app.modules.base_prices.schemas import BasePrice


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    BANK_TRANSFER = "BANK_TRANSFER"
    CARD = "CARD"


class OrderStatus(str, Enum):
    OPEN = "OPEN"
    SENT = "SENT"
    COMPLETED = "COMPLETED"


class Details(BaseModel):
    """
    Explains a computed line price: the chosen base price and variant,
    as they were when the order was placed.
    """
    base_price: BasePrice
    variant: Variant


class OrderArticle(BaseModel):
    """
    One order line. On checkout only article_id, amount and, for articles
    priced by base price and variant, base_price_id and variant_id are read.
    """
    article_id: int
    amount: int = 0
    base_price_id: int = 0
    variant_id: int = 0
    title: str = ""
    price: str = ""
    total: str = ""
    details: Optional[Details] = None


class Order(BaseModel):
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    full_name: str = ""
    email: str = ""
    phone: str = ""
    full_address: str = ""
    message: str = ""
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    status: OrderStatus = OrderStatus.OPEN
    articles: List[OrderArticle] = Field(default_factory=list)
    sum: str = ""


class OrderID(BaseModel):
    id: int
    env_key: str = ""
    data: str = ""
