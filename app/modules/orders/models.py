## Order:
#  id (int)
#  created_at, updated_at (datetime)
#  full_name, email, phone, full_address (text)  # Customer contact, all required at checkout
#  message (text)                                # Free text from the customer
#  payment_method (text)                         # PaymentMethod enum name
#  status (text)                                 # OrderStatus enum name
## OrderArticle:                                 # Snapshot of an article at order time
#  article_id, amount
#  title, price                                  # Copied, or price computed from base price * variant
#  details (jsonb, nullable)                     # Base price / variant explanation

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB
from app.core.database import Base, SCHEMA

class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    full_address: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    payment_method: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="OPEN")

    # Relationships
    order_articles: Mapped[list["OrderArticle"]] = relationship("OrderArticle", order_by="OrderArticle.id")


class OrderArticle(Base):
    __tablename__ = "order_articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(Integer, ForeignKey(f"{SCHEMA}.orders.id"), nullable=False, index=True)
    article_id: Mapped[int] = mapped_column(Integer, nullable=False)  # no FK, the line outlives the article
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)
