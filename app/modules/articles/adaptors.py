from typing import Any, Sequence

from app.core.errors import missing_fields
from app.core.validation import check_required, parse_decimal
from app.modules.articles import models
from app.modules.articles.schemas import Article, Media, Variant
from app.modules.base_prices.schemas import BasePrice
from app.modules.categories.schemas import Category


def article_to_row(sa: Article) -> dict[str, Any]:
    check_required({
        "title": sa.title,
        "description": sa.description,
        "price": sa.price,
    })

    row = {
        "published": sa.published,
        "title": sa.title,
        "description": sa.description,
        "price": parse_decimal("price", sa.price),
        "promoted": sa.promoted,
    }
    if sa.id:
        row["id"] = sa.id
    return row


def media_to_rows(aid: int, media: Sequence[Media]) -> list[dict[str, Any]]:
    """Images and videos share one shape; position follows submission order."""
    rows = []
    for i, m in enumerate(media):
        check_required({"article_id": aid, "label": m.label, "url": m.url})
        row = {"article_id": aid, "position": i + 1, "label": m.label, "url": m.url}
        if m.id:
            row["id"] = m.id
        rows.append(row)
    return rows


def variants_to_rows(aid: int, variants: Sequence[Variant]) -> list[dict[str, Any]]:
    rows = []
    for v in variants:
        check_required({"article_id": aid, "labels": v.labels, "multiplier": v.multiplier})
        row = {
            "article_id": aid,
            "labels": list(v.labels),
            "multiplier": parse_decimal("multiplier", v.multiplier),
        }
        if v.id:
            row["id"] = v.id
        rows.append(row)
    return rows


def relation_ids(items: Sequence[Any]) -> list[int]:
    """IDs of the categories or base prices an article is attached to."""
    ids = []
    for item in items:
        if not item.id:
            raise missing_fields(["id"])
        ids.append(item.id)
    return ids


RELATIONS = ("images", "videos", "categories", "base_prices", "variants")


def article_model_to_msg(art: models.Article, relations: Sequence[str] = RELATIONS) -> Article:
    """Maps a stored article and the loaded `relations` to its document."""
    sa = Article(
        id=art.id,
        created_at=art.created_at,
        updated_at=art.updated_at,
        published=art.published,
        title=art.title,
        description=art.description,
        price=str(art.price),
        promoted=art.promoted,
    )
    if "images" in relations:
        sa.images = [Media(id=img.id, label=img.label, url=img.url) for img in art.images]
    if "videos" in relations:
        sa.videos = [Media(id=vid.id, label=vid.label, url=vid.url) for vid in art.videos]
    if "categories" in relations:
        sa.categories = [Category(id=cat.id, label=cat.label) for cat in art.categories]
    if "base_prices" in relations:
        sa.base_prices = [BasePrice(id=bp.id, label=bp.label, price=str(bp.price)) for bp in art.base_prices]
    if "variants" in relations:
        sa.variants = [
            Variant(id=vrt.id, labels=list(vrt.labels), multiplier=str(vrt.multiplier))
            for vrt in art.variants
        ]
    return sa
