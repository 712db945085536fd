"""Dynamic article list query.

`article_list_query` turns `ListConditions` into one SQL statement returning a
single JSON array, one object per article, with the requested relations
nested. The statement is a chain of CTEs:

    filters  ids of the articles matching the conditions
    arts     the requested article columns, limited and offset
    r<N>     one per requested relation, aggregated per article

Rendering is kept apart from assembly: `Relation`, `Filters` and `ListQuery`
hold what to select, their `render` methods and the templates below decide
how it is written. Generated text must stay byte-stable, the decoder relies on the
key order of the JSON objects.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from app.core.errors import UnimplementedError
from app.modules.articles.fields import (
    ARTICLE_COLUMNS,
    BASE_PRICE_COLUMNS,
    CATEGORY_COLUMNS,
    IMAGE_COLUMNS,
    VARIANT_COLUMNS,
    VIDEO_COLUMNS,
    ArticleField,
    MediaField,
)
from app.modules.articles.schemas import ArticleRelations, ListConditions

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "shop"
DEFAULT_LIMIT = 25

# Columns holding exact decimals, cast to text so no precision is lost in JSON
DECIMAL_COLUMNS = frozenset({"price", "multiplier"})

DEFAULT_FIELDS = [
    ArticleField.ID,
    ArticleField.TITLE,
    ArticleField.PRICE,
    ArticleField.PROMOTED,
]

LIST_QUERY = (
    "with {ctes}\n"
    "select json_agg(\n"
    "\tjson_build_object(\n"
    "\t\t{pairs}\n"
    "\t)\n"
    ")\n"
    "from arts a\n"
    "{joins};"
)

MAIN_CTE = (
    "filters as (\n"
    "\tselect m.id\n"
    "\tfrom {schema}.{table} m\n"
    "\t{filters}\n"
    "),\n"
    "arts as (\n"
    "\tselect {columns}\n"
    "\tfrom filters f\n"
    "\tjoin {schema}.{table} a on a.id = f.id\n"
    "\t{limits}\n"
    ")"
)

RELATION_CTE = (
    "{alias} as (\n"
    "\tselect arts.id, coalesce(json_agg(\n"
    "\t\tjson_build_object(\n"
    "\t\t\t{pairs}\n"
    "\t\t)\n"
    "\t) filter (where r.id is not null), null::JSON) as js\n"
    "\tfrom arts\n"
    "\t{joins}\n"
    "\tgroup by arts.id\n"
    ")"
)

RELATION_JOIN = "left join {schema}.{table} {alias} on {alias}.{column} = {left_alias}.{left_column}"
RELATION_SELECT = "join {alias} on a.id = {alias}.id"
LIMITS = "limit {limit}\n\toffset {offset}"

JOIN_CATEGORY_ARTICLES = "join {schema}.category_articles ac on ac.article_id = m.id"
JOIN_CATEGORIES = "join {schema}.categories c on c.id = ac.category_id"


@dataclass(frozen=True)
class QueryConfig:
    """Process configuration for list queries, passed in by the caller.

    A `default_limit` of 0 or None means lists without an explicit limit
    are not limited at all.
    """
    default_limit: Optional[int] = DEFAULT_LIMIT
    debug: bool = False


def json_value(alias: str, column: str) -> str:
    if column in DECIMAL_COLUMNS:
        return f"{alias}.{column}::text"
    return f"{alias}.{column}"


def json_pairs(alias: str, columns: Sequence[str]) -> list[str]:
    pairs = []
    for col in columns:
        pairs += [f"'{col}'", json_value(alias, col)]
    return pairs


def left_join(schema: str, table: str, alias: str, column: str, left_alias: str, left_column: str) -> str:
    return RELATION_JOIN.format(
        schema=schema,
        table=table,
        alias=alias,
        column=column,
        left_alias=left_alias,
        left_column=left_column,
    )


@dataclass(frozen=True)
class Relation:
    name: str
    columns: tuple[str, ...]
    id: str  # relation column joined against the article id, or the target id for many-to-many

    join_table: str = ""
    join_ids: tuple[str, str] = ("", "")  # article side, target side

    def joins(self, schema: str) -> str:
        if not self.join_table:
            return left_join(schema, self.name, "r", self.id, "arts", "id")

        return "\n\t".join([
            left_join(schema, self.join_table, "j", self.join_ids[0], "arts", "id"),
            left_join(schema, self.name, "r", self.id, "j", self.join_ids[1]),
        ])

    def render(self, schema: str, alias: str) -> tuple[str, list[str]]:
        """Returns the relation CTE and its key/value pair in the final object."""
        cte = RELATION_CTE.format(
            alias=alias,
            pairs=", ".join(json_pairs("r", self.columns)),
            joins=self.joins(schema),
        )
        return cte, [f"'{self.name}'", f"{alias}.js"]


@dataclass
class Filters:
    joins: list[str] = field(default_factory=list)
    wheres: list[str] = field(default_factory=list)
    args: list[Any] = field(default_factory=list)

    def bind(self, value: Any) -> str:
        self.args.append(value)
        return f"${len(self.args)}"

    def render(self) -> str:
        if not self.wheres:
            return ""
        return "\n\t".join([
            "\n\t".join(self.joins),
            "where " + "\n\tand ".join(self.wheres),
        ])


@dataclass
class ListQuery:
    name: str
    columns: list[str]
    relations: list[Relation] = field(default_factory=list)
    limit: int = 0
    offset: int = 0

    def render(self, schema: str, filters: str) -> str:
        select = ["a.id"]  # id is always required
        pairs = json_pairs("a", ["id"])
        for col in self.columns:
            if col != "id":
                select.append(f"a.{col}")
                pairs += json_pairs("a", [col])

        limits = ""
        if self.limit:
            limits = LIMITS.format(limit=self.limit, offset=self.offset)

        ctes = [MAIN_CTE.format(
            schema=schema,
            table=self.name,
            filters=filters,
            columns=", ".join(select),
            limits=limits,
        )]

        joins = []
        for i, rel in enumerate(self.relations):
            alias = f"r{i}"
            cte, pair = rel.render(schema, alias)
            ctes.append(cte)
            pairs += pair
            joins.append(RELATION_SELECT.format(alias=alias))

        return LIST_QUERY.format(
            ctes=",\n".join(ctes),
            pairs=", ".join(pairs),
            joins="\n".join(joins),
        )


def article_relations(rel: ArticleRelations) -> list[Relation]:
    """Resolves requested relation fields in the fixed relation order.

    All relations are resolved; the first failure is raised afterwards.
    """
    specs = [
        (IMAGE_COLUMNS, rel.images, dict(name="images", id="article_id")),
        (VIDEO_COLUMNS, rel.videos, dict(name="videos", id="article_id")),
        (CATEGORY_COLUMNS, rel.categories, dict(
            name="categories", id="id",
            join_table="category_articles", join_ids=("article_id", "category_id"),
        )),
        (BASE_PRICE_COLUMNS, rel.base_prices, dict(
            name="base_prices", id="id",
            join_table="article_base_prices", join_ids=("article_id", "base_price_id"),
        )),
        (VARIANT_COLUMNS, rel.variants, dict(name="variants", id="article_id")),
    ]

    relations, errors = [], []
    for catalog, selection, kwargs in specs:
        try:
            cols = catalog.resolve(selection)
        except UnimplementedError as exc:
            errors.append(exc)
            continue
        if cols:
            relations.append(Relation(columns=tuple(cols), **kwargs))

    if errors:
        raise errors[0]
    return relations


def defaults(cond: ListConditions, config: QueryConfig) -> tuple[Any, ArticleRelations, int, int]:
    fields = cond.fields if cond.fields else list(DEFAULT_FIELDS)

    relations = cond.relations
    if relations is None:
        relations = ArticleRelations(images=[MediaField.URL, MediaField.LABEL])

    limit = cond.limit
    if limit is None:
        limit = config.default_limit or 0

    return fields, relations, limit, cond.offset


def filters(cond: ListConditions, schema: str) -> Filters:
    f = Filters()
    if cond.only_published:
        f.wheres.append("m.published")
    if cond.only_promoted:
        f.wheres.append("m.promoted")

    if cond.only_category_id:
        f.joins.append(JOIN_CATEGORY_ARTICLES.format(schema=schema))
        f.wheres.append(f"ac.category_id = {f.bind(cond.only_category_id)}")
    elif cond.only_category_label:
        f.joins.append(JOIN_CATEGORY_ARTICLES.format(schema=schema))
        f.joins.append(JOIN_CATEGORIES.format(schema=schema))
        f.wheres.append(f"c.label = {f.bind(cond.only_category_label)}")

    return f


def article_list_query(
    cond: ListConditions,
    schema: str = DEFAULT_SCHEMA,
    config: QueryConfig = QueryConfig(),
) -> tuple[str, list[Any]]:
    """Builds the article list query and its positional arguments.

    Raises UnimplementedError when a requested field is not mapped.
    """
    fields, relations, limit, offset = defaults(cond, config)

    lq = ListQuery(
        name="articles",
        columns=ARTICLE_COLUMNS.resolve(fields),
        relations=article_relations(relations),
        limit=limit,
        offset=offset,
    )

    f = filters(cond, schema)
    query = lq.render(schema, f.render())
    if config.debug:
        logger.debug("article list query:\n%s\nargs: %r", query, f.args)
    return query, f.args
