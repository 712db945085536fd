"""Article storage steps. Each function runs inside the caller's RequestTx."""

import re
from typing import Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import selectinload

from app.core.database import upsert
from app.core.errors import ERR_FATAL, DecodeError, InternalError, InvalidArgumentError, UnimplementedError
from app.core.transaction import RequestTx
from app.modules.articles import models
from app.modules.articles.adaptors import (
    article_model_to_msg,
    article_to_row,
    media_to_rows,
    relation_ids,
    variants_to_rows,
)
from app.modules.articles.builder import QueryConfig, article_list_query
from app.modules.articles.decoder import decode
from app.modules.articles.schemas import Article, ListConditions, Media, SuggestionList, Variant
from app.modules.base_prices.schemas import BasePrice
from app.modules.categories.schemas import Category
from app.modules.categories.service import suggest_categories

ERR_SEARCH = "Missing search text"


def upsert_article(rt: RequestTx, sa: Article) -> int:
    try:
        row = article_to_row(sa)
    except InvalidArgumentError as exc:
        rt.log.warning("article_to_row: %s", exc.message)
        raise

    with rt.guard("upsert_article", article=sa.id or None):
        return rt.session.execute(upsert(models.Article, row).returning(models.Article.id)).scalar_one()


def set_article_categories(rt: RequestTx, aid: int, categories: Sequence[Category]) -> None:
    ids = relation_ids(categories)
    ca = models.category_articles
    with rt.guard("set_article_categories", categories=ids):
        rt.session.execute(delete(ca).where(ca.c.article_id == aid))
        if ids:
            rt.session.execute(insert(ca), [{"article_id": aid, "category_id": cid} for cid in ids])


def set_article_base_prices(rt: RequestTx, aid: int, base_prices: Sequence[BasePrice]) -> None:
    ids = relation_ids(base_prices)
    abp = models.article_base_prices
    with rt.guard("set_article_base_prices", base_prices=ids):
        rt.session.execute(delete(abp).where(abp.c.article_id == aid))
        if ids:
            rt.session.execute(insert(abp), [{"article_id": aid, "base_price_id": bid} for bid in ids])


def _replace(rt: RequestTx, model, aid: int, rows: list[dict], action: str) -> None:
    """Deletes every row of `model` owned by the article, then inserts `rows`."""
    with rt.guard(f"{action}: cleanup", aid=aid) as log:
        ra = rt.session.execute(delete(model).where(model.article_id == aid)).rowcount
        log.debug("%s: cleanup rows=%s", action, ra)
    for row in rows:
        with rt.guard(action, row=row):
            rt.session.execute(insert(model).values(**row))


def update_variants(rt: RequestTx, aid: int, variants: Sequence[Variant]) -> None:
    try:
        rows = variants_to_rows(aid, variants)
    except InvalidArgumentError as exc:
        rt.log.warning("variants_to_rows: %s", exc.message)
        raise
    _replace(rt, models.Variant, aid, rows, "update_variants")


def update_images(rt: RequestTx, aid: int, images: Sequence[Media]) -> None:
    try:
        rows = media_to_rows(aid, images)
    except InvalidArgumentError as exc:
        rt.log.warning("images: %s", exc.message)
        raise
    _replace(rt, models.Image, aid, rows, "update_images")


def update_videos(rt: RequestTx, aid: int, videos: Sequence[Media]) -> None:
    try:
        rows = media_to_rows(aid, videos)
    except InvalidArgumentError as exc:
        rt.log.warning("videos: %s", exc.message)
        raise
    _replace(rt, models.Video, aid, rows, "update_videos")


def view_article(rt: RequestTx, aid: int) -> Article:
    stmt = (
        select(models.Article)
        .where(models.Article.id == aid)
        .options(
            selectinload(models.Article.images),
            selectinload(models.Article.videos),
            selectinload(models.Article.categories),
            selectinload(models.Article.base_prices),
            selectinload(models.Article.variants),
        )
    )
    with rt.guard("view_article", not_found=f"Article {aid} not found", aid=aid):
        art = rt.session.execute(stmt).scalar_one()
        return article_model_to_msg(art)


def list_articles(rt: RequestTx, cond: ListConditions, schema: str, config: QueryConfig) -> list[Article]:
    log = rt.log.with_fields(cond=cond.model_dump(exclude_defaults=True))
    try:
        query, args = article_list_query(cond, schema, config)
    except UnimplementedError as exc:
        log.warning("article_list_query: %s", exc.message)
        raise

    with rt.guard("list_articles"):
        raw = rt.execute_positional(query, args).scalar_one()

    try:
        return decode(raw)
    except DecodeError as exc:
        log.error("decode: %s", exc.message)
        raise InternalError(ERR_FATAL) from exc


def delete_article(rt: RequestTx, aid: int) -> int:
    """Deletes the article and everything attached to it.

    Returns the total number of affected rows; an unknown id affects none.
    """
    stmts = [
        ("category_articles", delete(models.category_articles).where(models.category_articles.c.article_id == aid)),
        ("article_base_prices", delete(models.article_base_prices).where(models.article_base_prices.c.article_id == aid)),
        ("videos", delete(models.Video).where(models.Video.article_id == aid)),
        ("images", delete(models.Image).where(models.Image.article_id == aid)),
        ("variants", delete(models.Variant).where(models.Variant.article_id == aid)),
        ("articles", delete(models.Article).where(models.Article.id == aid)),
    ]

    counts = {}
    with rt.guard("delete_article", aid=aid):
        for name, stmt in stmts:
            counts[name] = rt.session.execute(stmt).rowcount
    total = sum(counts.values())
    rt.log.with_fields(total=total, **counts).debug("delete_article")
    return total


def _text(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise InvalidArgumentError(ERR_SEARCH)
    return text


def search_articles(rt: RequestTx, text: str, language: str) -> list[Article]:
    query = func.plainto_tsquery(language, _text(text))
    stmt = (
        select(models.Article)
        .where(models.Article.search_index.bool_op("@@")(query))
        .options(selectinload(models.Article.images))
        .order_by(models.Article.id)
    )
    with rt.guard("search_articles"):
        arts = rt.session.execute(stmt).scalars().all()
        return [article_model_to_msg(art, relations=("images",)) for art in arts]


def prefix_query(text: str) -> str:
    """Turns free text into a tsquery matching words by prefix: "ab cd" -> "ab:* & cd:*"."""
    words = re.findall(r"\w+", _text(text))
    if not words:
        raise InvalidArgumentError(ERR_SEARCH)
    return " & ".join(f"{w}:*" for w in words)


def suggest(rt: RequestTx, text: str, language: str) -> SuggestionList:
    """Articles and categories matching every word of `text` by prefix."""
    query = func.to_tsquery(language, prefix_query(text))
    stmt = select(models.Article).where(models.Article.search_index.bool_op("@@")(query)).order_by(models.Article.id)
    with rt.guard("suggest_articles"):
        arts = [article_model_to_msg(art, relations=()) for art in rt.session.execute(stmt).scalars().all()]
    return SuggestionList(articles=arts, categories=suggest_categories(rt, query))
