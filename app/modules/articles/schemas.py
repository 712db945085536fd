"""
Article documents and list conditions.

Decimal values (price, multiplier) travel as exact decimal strings. Relation
lists decode a JSON `null` to an empty list; whether the key was present at
all stays visible through `model_fields_set`.
"""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.modules.articles.fields import normalize_selection
from app.modules.base_prices.schemas import BasePrice
from app.modules.categories.schemas import Category

Selection = Union[Literal["ALL"], List[Union[Literal["ALL"], int]]]


class Media(BaseModel):
    """Image or video attached to an article"""
    id: int = 0
    label: str = ""
    url: str = ""


class Variant(BaseModel):
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    labels: List[str] = Field(default_factory=list)
    multiplier: str = Field("", description="Exact decimal, as text")


class Article(BaseModel):
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published: bool = False
    title: str = ""
    description: str = ""
    price: str = Field("", description="Exact decimal, as text")
    promoted: bool = False
    images: List[Media] = Field(default_factory=list)
    videos: List[Media] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    base_prices: List[BasePrice] = Field(
        default_factory=list,
        validation_alias=AliasChoices("base_prices", "baseprices"),
    )
    variants: List[Variant] = Field(default_factory=list)

    @field_validator("images", "videos", "categories", "base_prices", "variants", mode="before")
    @classmethod
    def null_relation(cls, v):
        return [] if v is None else v


class ArticleRelations(BaseModel):
    """Requested fields per relation; an empty selection leaves the relation out."""
    images: Selection = Field(default_factory=list)
    videos: Selection = Field(default_factory=list)
    categories: Selection = Field(default_factory=list)
    base_prices: Selection = Field(default_factory=list)
    variants: Selection = Field(default_factory=list)

    @field_validator("images", "videos", "categories", "base_prices", "variants", mode="before")
    @classmethod
    def zero_is_all(cls, v):
        return normalize_selection(v)


class ListConditions(BaseModel):
    fields: Selection = Field(default_factory=list)
    relations: Optional[ArticleRelations] = None
    only_category_id: int = 0
    only_category_label: str = ""
    only_published: bool = False
    only_promoted: bool = False
    limit: Optional[int] = Field(None, ge=0, description="None applies the default limit, 0 disables limiting")
    offset: int = Field(0, ge=0)

    @field_validator("fields", mode="before")
    @classmethod
    def zero_is_all(cls, v):
        return normalize_selection(v)


class Deleted(BaseModel):
    rows: int = 0


class SuggestionList(BaseModel):
    articles: List[Article] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
