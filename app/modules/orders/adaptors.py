from decimal import Decimal
from typing import Any, Sequence

from app.core.errors import InvalidArgumentError, UnimplementedError, missing_fields
from app.core.validation import check_required
from app.modules.orders import models
from app.modules.orders.pricing import line_total, order_sum
from app.modules.orders.schemas import Details, Order, OrderArticle, OrderStatus, PaymentMethod

ERR_NO_ARTS = "No articles in order"
ERR_NEG_AMOUNT = "Negative amount on order article {}: {}"  # Article ID and amount
ERR_ENUM = "ENUM mismatch: {}"


def order_to_row(so: Order) -> dict[str, Any]:
    check_required({
        "full_name": so.full_name,
        "email": so.email,
        "phone": so.phone,
        "full_address": so.full_address,
    })
    return {
        "full_name": so.full_name,
        "email": so.email,
        "phone": so.phone,
        "full_address": so.full_address,
        "message": so.message,
        "payment_method": so.payment_method.value,
    }


def order_update_to_row(so: Order) -> dict[str, Any]:
    """Columns a shop operator may change on an existing order."""
    if so.id <= 0:
        raise missing_fields(["id"])
    return {
        "full_name": so.full_name,
        "email": so.email,
        "phone": so.phone,
        "full_address": so.full_address,
        "message": so.message,
        "payment_method": so.payment_method.value,
        "status": so.status.value,
    }


def check_order_articles(lines: Sequence[OrderArticle]) -> None:
    total = 0
    for line in lines:
        if line.amount < 0:
            raise InvalidArgumentError(ERR_NEG_AMOUNT.format(line.article_id, line.amount))
        total += line.amount
    if total == 0:
        raise InvalidArgumentError(ERR_NO_ARTS)


def order_articles_to_msg(arts: Sequence[models.OrderArticle]) -> tuple[list[OrderArticle], str]:
    """Order lines with their totals, and the order sum."""
    lines = []
    for a in arts:
        lines.append(OrderArticle(
            article_id=a.article_id,
            amount=a.amount,
            title=a.title,
            price=str(a.price),
            total=str(line_total(a.price, a.amount)),
            details=Details.model_validate(a.details) if a.details else None,
        ))
    return lines, str(order_sum((Decimal(a.price), a.amount) for a in arts))


def order_model_to_msg(order: models.Order) -> Order:
    try:
        payment_method = PaymentMethod(order.payment_method)
    except ValueError as exc:
        raise UnimplementedError(ERR_ENUM.format(order.payment_method)) from exc
    try:
        status = OrderStatus(order.status)
    except ValueError as exc:
        raise UnimplementedError(ERR_ENUM.format(order.status)) from exc

    return Order(
        id=order.id,
        created_at=order.created_at,
        updated_at=order.updated_at,
        full_name=order.full_name,
        email=order.email,
        phone=order.phone,
        full_address=order.full_address,
        message=order.message,
        payment_method=payment_method,
        status=status,
    )
