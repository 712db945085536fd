from sqlalchemy import delete, select

from app.core.database import upsert
from app.core.errors import InvalidArgumentError, missing_fields
from app.core.transaction import RequestTx
from app.core.validation import check_required, parse_decimal
from app.modules.articles.models import article_base_prices
from app.modules.base_prices import models
from app.modules.base_prices.schemas import BasePrice


def base_price_to_msg(bp: models.BasePrice) -> BasePrice:
    return BasePrice(
        id=bp.id,
        created_at=bp.created_at,
        updated_at=bp.updated_at,
        label=bp.label,
        price=str(bp.price),
    )


def base_price_to_row(sbp: BasePrice) -> dict:
    check_required({"label": sbp.label, "price": sbp.price})
    row = {"label": sbp.label, "price": parse_decimal("price", sbp.price)}
    if sbp.id:
        row["id"] = sbp.id
    return row


def upsert_base_price(rt: RequestTx, sbp: BasePrice) -> BasePrice:
    try:
        row = base_price_to_row(sbp)
    except InvalidArgumentError as exc:
        rt.log.warning("base_price_to_row: %s", exc.message)
        raise

    stmt = upsert(models.BasePrice, row, blacklist=("id", "created_at")).returning(models.BasePrice)
    with rt.guard("upsert_base_price", base_price=row):
        bp = rt.session.execute(stmt).scalar_one()
        return base_price_to_msg(bp)


def delete_base_price(rt: RequestTx, bpid: int) -> int:
    """Detaches the base price from every article and deletes it. Returns affected rows."""
    if not bpid:
        raise missing_fields(["id"])

    abp = article_base_prices
    with rt.guard("delete_base_price", base_price=bpid):
        detached = rt.session.execute(delete(abp).where(abp.c.base_price_id == bpid)).rowcount
        deleted = rt.session.execute(delete(models.BasePrice).where(models.BasePrice.id == bpid)).rowcount
    return detached + deleted


def list_base_prices(rt: RequestTx) -> list[BasePrice]:
    with rt.guard("list_base_prices"):
        bps = rt.session.execute(select(models.BasePrice).order_by(models.BasePrice.id)).scalars().all()
        return [base_price_to_msg(bp) for bp in bps]
