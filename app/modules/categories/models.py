from datetime import datetime
from sqlalchemy import Computed, DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import TSVECTOR
from app.core.database import Base

class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)

    # 1-based, reflects the order of the last SaveCategories call
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    search_index = mapped_column(
        TSVECTOR,
        Computed("to_tsvector('romanian'::regconfig, label)", persisted=True),
        deferred=True
    )
