## Article:
#  id (int)
#  created_at, updated_at (datetime)
#  published (bool)                             # Listed to customers
#  title (text)
#  description (text)
#  price (decimal)                              # Used as-is unless base prices and variants exist
#  promoted (bool)
#  search_index (tsvector, generated)           # Full text search over title and description
## Relations
#  images, videos (one-to-many, ordered by position)
#  variants (one-to-many)
#  categories (many-to-many through category_articles)
#  base_prices (many-to-many through article_base_prices)

from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Computed,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import ARRAY, TSVECTOR
from app.core.database import Base, SCHEMA
from app.modules.base_prices.models import BasePrice
from app.modules.categories.models import Category

category_articles = Table(
    "category_articles",
    Base.metadata,
    Column("category_id", Integer, ForeignKey(f"{SCHEMA}.categories.id"), primary_key=True),
    Column("article_id", Integer, ForeignKey(f"{SCHEMA}.articles.id"), primary_key=True),
)

article_base_prices = Table(
    "article_base_prices",
    Base.metadata,
    Column("article_id", Integer, ForeignKey(f"{SCHEMA}.articles.id"), primary_key=True),
    Column("base_price_id", Integer, ForeignKey(f"{SCHEMA}.base_prices.id"), primary_key=True),
)


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    promoted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    search_index = mapped_column(
        TSVECTOR,
        Computed("to_tsvector('romanian'::regconfig, title || ' ' || description)", persisted=True),
        deferred=True
    )

    # Relationships
    images: Mapped[list["Image"]] = relationship("Image", order_by="Image.position")
    videos: Mapped[list["Video"]] = relationship("Video", order_by="Video.position")
    variants: Mapped[list["Variant"]] = relationship("Variant", order_by="Variant.id")
    categories: Mapped[list[Category]] = relationship(Category, secondary=category_articles, order_by=Category.position)
    base_prices: Mapped[list[BasePrice]] = relationship(BasePrice, secondary=article_base_prices, order_by=BasePrice.id)


class Image(Base):
    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    article_id: Mapped[int] = mapped_column(Integer, ForeignKey(f"{SCHEMA}.articles.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)


class Video(Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    article_id: Mapped[int] = mapped_column(Integer, ForeignKey(f"{SCHEMA}.articles.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)


class Variant(Base):
    __tablename__ = "variants"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )
    article_id: Mapped[int] = mapped_column(Integer, ForeignKey(f"{SCHEMA}.articles.id"), nullable=False, index=True)
    labels: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
