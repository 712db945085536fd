from typing import Sequence

from sqlalchemy import select

from app.core.database import upsert
from app.core.errors import InvalidArgumentError, missing_fields
from app.core.transaction import RequestTx
from app.modules.articles.models import Article, category_articles
from app.modules.categories import models
from app.modules.categories.schemas import Category


def category_to_msg(cat: models.Category) -> Category:
    return Category(id=cat.id, created_at=cat.created_at, updated_at=cat.updated_at, label=cat.label)


def categories_to_rows(categories: Sequence[Category]) -> list[dict]:
    rows = []
    for i, c in enumerate(categories):
        if not c.label:
            raise missing_fields(["label"])
        row = {"label": c.label, "position": i + 1}
        if c.id:
            row["id"] = c.id
        rows.append(row)
    return rows


def save_categories(rt: RequestTx, categories: Sequence[Category]) -> None:
    """Upserts every category, positions follow the submitted order."""
    try:
        rows = categories_to_rows(categories)
    except InvalidArgumentError as exc:
        rt.log.warning("categories_to_rows: %s", exc.message)
        raise

    for row in rows:
        with rt.guard("save_categories", category=row):
            rt.session.execute(upsert(models.Category, row, blacklist=("id", "created_at")))


def list_categories(rt: RequestTx, only_published_articles: bool = False) -> list[Category]:
    stmt = select(models.Category).order_by(models.Category.position, models.Category.id)
    if only_published_articles:
        stmt = (
            stmt.join(category_articles, category_articles.c.category_id == models.Category.id)
            .join(Article, Article.id == category_articles.c.article_id)
            .where(Article.published.is_(True))
            .group_by(models.Category.id)
        )

    with rt.guard("list_categories", only_published_articles=only_published_articles):
        return [category_to_msg(cat) for cat in rt.session.execute(stmt).scalars().all()]


def suggest_categories(rt: RequestTx, query) -> list[Category]:
    """Categories whose search index matches the given tsquery expression."""
    stmt = select(models.Category).where(models.Category.search_index.bool_op("@@")(query)).order_by(models.Category.position)
    with rt.guard("suggest_categories"):
        return [category_to_msg(cat) for cat in rt.session.execute(stmt).scalars().all()]
