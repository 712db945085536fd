from functools import lru_cache
from typing import Any, Sequence

from sqlalchemy import MetaData, create_engine, func
from sqlalchemy.dialects.postgresql import Insert, insert as pg_insert
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from app.core.config import get_settings

SCHEMA = "shop"

_NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for all shop tables, which live in the `shop` schema."""

    metadata = MetaData(schema=SCHEMA, naming_convention=_NAMING_CONVENTION)


def upsert(model: type[Base], values: dict[str, Any], blacklist: Sequence[str] = ("id",)) -> Insert:
    """INSERT, or INSERT .. ON CONFLICT (id) DO UPDATE when `values` carries an id.

    Blacklisted columns are never overwritten by the update path. Tables with
    an `updated_at` column get it refreshed on update.
    """
    stmt = pg_insert(model).values(**values)
    if not values.get("id"):
        return stmt

    update = {k: stmt.excluded[k] for k in values if k not in blacklist}
    if "updated_at" in model.__table__.c:
        update["updated_at"] = func.now()
    return stmt.on_conflict_do_update(index_elements=[model.__table__.c.id], set_=update)


def make_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    # Transactions are begun explicitly by RequestTx.
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    return create_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True)


@lru_cache
def get_sessionmaker() -> sessionmaker[Session]:
    return make_sessionmaker(get_engine())
