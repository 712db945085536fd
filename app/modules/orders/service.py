"""Order storage steps: pricing new lines, checkout, listing and updates."""

from html import escape
from typing import Optional, Sequence

from sqlalchemy import exists, select, update

from app.core.config import Settings
from app.core.errors import ERR_NOT_FOUND, InternalError, InvalidArgumentError
from app.core.mail import ORDER_MAIL_TMPL, Mailer
from app.core.payment import PaymentGateway, PaymentRequest
from app.core.transaction import RequestTx
from app.modules.articles.models import Article, Variant, article_base_prices
from app.modules.base_prices.models import BasePrice
from app.modules.orders import models
from app.modules.orders.adaptors import (
    check_order_articles,
    order_articles_to_msg,
    order_model_to_msg,
    order_to_row,
    order_update_to_row,
)
from app.modules.orders.pricing import Calculation, calculate
from app.modules.orders.schemas import Order, OrderArticle, OrderStatus

ERR_VRT_PRICE = "Article ID {} missing BasePrice or Variant ID"
ERR_MAILER = "Mailer error"
ERR_PAYMENT = "Payment gateway error"


def should_calc_price(rt: RequestTx, aid: int) -> bool:
    """True when the article has at least one base price and one variant."""
    abp = article_base_prices
    has_bp = exists().where(abp.c.article_id == aid)
    has_vrt = exists().where(Variant.article_id == aid)
    with rt.guard("should_calc_price", aid=aid):
        bp, vrt = rt.session.execute(select(has_bp, has_vrt)).one()
    return bool(bp and vrt)


def calc_price(rt: RequestTx, aid: int, bpid: int, vrtid: int) -> Calculation:
    """Unit price of an article line as base price times variant multiplier.

    Both the base price and the variant must belong to the article.
    """
    log = rt.log.with_fields(aid=aid, bpid=bpid, vrtid=vrtid)
    if not bpid or not vrtid:
        log.warning(ERR_VRT_PRICE.format(aid))
        raise InvalidArgumentError(ERR_VRT_PRICE.format(aid))

    abp = article_base_prices
    bp_stmt = (
        select(BasePrice.label, BasePrice.price)
        .join(abp, abp.c.base_price_id == BasePrice.id)
        .where(BasePrice.id == bpid, abp.c.article_id == aid)
    )
    vrt_stmt = select(Variant.labels, Variant.multiplier).where(Variant.id == vrtid, Variant.article_id == aid)

    not_found = f"BasePrice and/or Variant for Article ID {aid}"
    with rt.guard("calc_price", not_found=not_found, aid=aid, bpid=bpid, vrtid=vrtid):
        bp = rt.session.execute(bp_stmt).one()
        vrt = rt.session.execute(vrt_stmt).one()

    return calculate(bp.label, bp.price, vrt.labels, vrt.multiplier)


def new_order_article(rt: RequestTx, line: OrderArticle) -> models.OrderArticle:
    aid = line.article_id
    stmt = select(Article.id, Article.title, Article.price).where(Article.id == aid)
    with rt.guard("new_order_article", not_found=ERR_NOT_FOUND.format("Article", "ID", aid), aid=aid):
        art = rt.session.execute(stmt).one()

    oa = models.OrderArticle(article_id=aid, amount=line.amount, title=art.title, price=art.price)
    if not should_calc_price(rt, aid):
        return oa

    calc = calc_price(rt, aid, line.base_price_id, line.variant_id)
    oa.price = calc.price
    oa.details = calc.details.model_dump(mode="json", exclude_defaults=True)
    rt.log.with_fields(aid=aid, price=str(calc.price)).debug("new_order_article")
    return oa


def new_order(rt: RequestTx, so: Order) -> models.Order:
    """Stores the order with every line priced as of now."""
    try:
        row = order_to_row(so)
        check_order_articles(so.articles)
    except InvalidArgumentError as exc:
        rt.log.warning("new_order: %s", exc.message)
        raise

    lines = [new_order_article(rt, line) for line in so.articles]
    order = models.Order(**row, order_articles=lines)
    with rt.guard("new_order") as log:
        rt.session.add(order)
        rt.session.flush()
        log.with_fields(order_id=order.id).debug("new_order: stored")
    return order


def get_order_articles(rt: RequestTx, oid: int) -> tuple[list[OrderArticle], str]:
    stmt = select(models.OrderArticle).where(models.OrderArticle.order_id == oid).order_by(models.OrderArticle.id)
    with rt.guard("get_order_articles", order_id=oid):
        arts = rt.session.execute(stmt).scalars().all()
    return order_articles_to_msg(arts)


def order_to_msg(rt: RequestTx, order: models.Order) -> Order:
    msg = order_model_to_msg(order)
    msg.articles, msg.sum = get_order_articles(rt, order.id)
    return msg


def list_orders(rt: RequestTx, status: Optional[OrderStatus] = None) -> list[Order]:
    """Orders, optionally only those in `status`, each with its lines and sum."""
    stmt = select(models.Order).order_by(models.Order.id)
    if status is not None:
        stmt = stmt.where(models.Order.status == status.value)

    with rt.guard("list_orders", status=status):
        orders = rt.session.execute(stmt).scalars().all()
    return [order_to_msg(rt, order) for order in orders]


def save_order(rt: RequestTx, so: Order) -> models.Order:
    try:
        row = order_update_to_row(so)
    except InvalidArgumentError as exc:
        rt.log.warning("order_update_to_row: %s", exc.message)
        raise

    with rt.guard("save_order", order_id=so.id):
        rt.session.execute(update(models.Order).where(models.Order.id == so.id).values(**row))

    with rt.guard("save_order: reload", not_found=f"Order ID {so.id} Not Found", order_id=so.id):
        return rt.session.execute(
            select(models.Order).where(models.Order.id == so.id).execution_options(populate_existing=True)
        ).scalar_one()


def _lines_html(lines: Sequence[OrderArticle], currency: str) -> str:
    rows = []
    for line in lines:
        label = escape(line.title)
        if line.details:
            extra = " ".join(line.details.variant.labels)
            label = f"{label} ({escape(line.details.base_price.label)} {escape(extra)})"
        rows.append(
            f"<tr><td>{label}</td><td>{line.amount}</td>"
            f"<td>{line.price} {currency}</td><td>{line.total} {currency}</td></tr>"
        )
    return "\n".join(rows)


def send_order_mail(rt: RequestTx, mailer: Mailer, settings: Settings, order: models.Order, subject: str) -> Order:
    """Mails the order to the shop and the customer. Returns the mailed order."""
    msg = order_to_msg(rt, order)
    to = [*settings.mail_to, msg.email]
    headers = {"From": [settings.mail_from], "Subject": [subject], "To": to}
    data = {
        "id": msg.id,
        "created": msg.created_at.strftime("%Y-%m-%d %H:%M") if msg.created_at else "",
        "full_name": escape(msg.full_name),
        "email": escape(msg.email),
        "phone": escape(msg.phone),
        "full_address": escape(msg.full_address),
        "message": escape(msg.message),
        "payment_method": msg.payment_method.value,
        "status": msg.status.value,
        "articles": _lines_html(msg.articles, settings.currency),
        "sum": msg.sum,
        "currency": settings.currency,
        "shop_name": settings.shop_name,
    }

    log = rt.log.with_fields(headers=headers)
    try:
        mailer.send(headers, ORDER_MAIL_TMPL, data, to)
    except Exception as exc:
        log.exception("send_order_mail")
        raise InternalError(ERR_MAILER) from exc
    log.debug("send_order_mail")
    return msg


def encrypt_order(rt: RequestTx, gateway: PaymentGateway, settings: Settings, msg: Order) -> tuple[str, str]:
    """Encrypted card payment redirect payload and its envelope key."""
    first_name, last_name = PaymentRequest.billing_name(msg.full_name)
    req = PaymentRequest(
        order_id=msg.id,
        amount=msg.sum,
        currency=settings.currency,
        first_name=first_name,
        last_name=last_name,
        address=msg.full_address,
        phone=msg.phone,
        email=msg.email,
        confirm_url=settings.payment_confirm_url,
        return_url=settings.payment_return_url,
    )
    try:
        return gateway.encrypt(req)
    except Exception as exc:
        rt.log.with_fields(order_id=msg.id).exception("encrypt_order")
        raise InternalError(ERR_PAYMENT) from exc
