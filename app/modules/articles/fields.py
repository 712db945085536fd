"""Field catalog: logical field identifiers per entity, mapped to columns.

A selection is either the `ALL` sentinel or a sequence of identifiers. `ALL`
may also appear inside a sequence, in which case it wins over everything
else in that sequence.
"""

from enum import IntEnum
from typing import Literal, Optional, Sequence, Union

from app.core.errors import UnimplementedError

ALL = "ALL"

FieldSelection = Union[Literal["ALL"], Sequence[Union[int, Literal["ALL"]]]]

ERR_FIELD = "{} field {} not defined"


class ArticleField(IntEnum):
    ID = 1
    CREATED = 2
    UPDATED = 3
    PUBLISHED = 4
    TITLE = 5
    DESCRIPTION = 6
    PRICE = 7
    PROMOTED = 8


class MediaField(IntEnum):
    ID = 1
    LABEL = 2
    URL = 3


class CategoryField(IntEnum):
    ID = 1
    CREATED = 2
    UPDATED = 3
    LABEL = 4


class BasePriceField(IntEnum):
    ID = 1
    CREATED = 2
    UPDATED = 3
    LABEL = 4
    PRICE = 5


class VariantField(IntEnum):
    ID = 1
    CREATED = 2
    UPDATED = 3
    LABELS = 4
    MULTIPLIER = 5


def normalize_selection(value):
    """Maps the wire value 0 to `ALL`. Anything else is returned unchanged."""
    if value is None:
        return []
    if value == ALL or isinstance(value, (str, bytes)):
        return value
    return [ALL if (not isinstance(f, str) and int(f) == 0) else f for f in value]


class FieldColumns:
    def __init__(self, entity: str, fields: type[IntEnum], mapping: dict[int, str]):
        self.entity = entity
        self.fields = fields
        self.mapping = {int(k): v for k, v in mapping.items()}
        # ascending identifier order, for deterministic output
        self.all = tuple(self.mapping[k] for k in sorted(self.mapping))

    def columns(self, selection: FieldSelection) -> tuple[list[str], Optional[int]]:
        """Returns the columns for `selection` and the first unmapped identifier, if any."""
        if selection == ALL or ALL in selection:
            return list(self.all), None

        cols = []
        for fid in selection:
            col = self.mapping.get(int(fid))
            if col is None:
                return [], int(fid)
            cols.append(col)
        return cols, None

    def resolve(self, selection: FieldSelection) -> list[str]:
        cols, unresolved = self.columns(selection)
        if unresolved is not None:
            raise UnimplementedError(ERR_FIELD.format(self.entity, self.field_name(unresolved)))
        return cols

    def field_name(self, fid: int) -> str:
        try:
            return self.fields(fid).name
        except ValueError:
            return str(fid)


ARTICLE_COLUMNS = FieldColumns("Article", ArticleField, {
    ArticleField.ID: "id",
    ArticleField.CREATED: "created_at",
    ArticleField.UPDATED: "updated_at",
    ArticleField.PUBLISHED: "published",
    ArticleField.TITLE: "title",
    ArticleField.DESCRIPTION: "description",
    ArticleField.PRICE: "price",
    ArticleField.PROMOTED: "promoted",
})

IMAGE_COLUMNS = FieldColumns("Image", MediaField, {
    MediaField.ID: "id",
    MediaField.LABEL: "label",
    MediaField.URL: "url",
})

VIDEO_COLUMNS = FieldColumns("Video", MediaField, {
    MediaField.ID: "id",
    MediaField.LABEL: "label",
    MediaField.URL: "url",
})

CATEGORY_COLUMNS = FieldColumns("Category", CategoryField, {
    CategoryField.ID: "id",
    CategoryField.CREATED: "created_at",
    CategoryField.UPDATED: "updated_at",
    CategoryField.LABEL: "label",
})

BASE_PRICE_COLUMNS = FieldColumns("BasePrice", BasePriceField, {
    BasePriceField.ID: "id",
    BasePriceField.CREATED: "created_at",
    BasePriceField.UPDATED: "updated_at",
    BasePriceField.LABEL: "label",
    BasePriceField.PRICE: "price",
})

VARIANT_COLUMNS = FieldColumns("Variant", VariantField, {
    VariantField.ID: "id",
    VariantField.CREATED: "created_at",
    VariantField.UPDATED: "updated_at",
    VariantField.LABELS: "labels",
    VariantField.MULTIPLIER: "multiplier",
})
