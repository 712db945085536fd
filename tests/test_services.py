from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import NoResultFound

from app.core.errors import InvalidArgumentError, NotFoundError
from app.modules.articles import service as articles
from app.modules.articles.schemas import Media
from app.modules.orders import service as orders
from app.modules.orders.schemas import OrderArticle


def one(row):
    result = MagicMock()
    result.one.return_value = row
    return result


def rows(n):
    return MagicMock(rowcount=n)


def article_row(price="30000.99"):
    return one(SimpleNamespace(id=5, title="Masa", price=Decimal(price)))


def test_line_priced_by_base_price_and_variant(rt, session):
    with rt:
        session.execute.side_effect = [
            article_row("1"),
            one((True, True)),
            one(SimpleNamespace(label="oak", price=Decimal("100.10"))),
            one(SimpleNamespace(labels=["big"], multiplier=Decimal("1.25"))),
        ]
        oa = orders.new_order_article(rt, OrderArticle(article_id=5, amount=2, base_price_id=3, variant_id=4))

    assert (oa.article_id, oa.amount, oa.title) == (5, 2, "Masa")
    assert str(oa.price) == "125.1250"
    assert oa.details == {
        "base_price": {"label": "oak", "price": "100.10"},
        "variant": {"labels": ["big"], "multiplier": "1.25"},
    }


@pytest.mark.parametrize("configured", [(False, False), (True, False), (False, True)])
def test_line_keeps_article_price(rt, session, configured):
    with rt:
        session.execute.side_effect = [article_row(), one(configured)]
        oa = orders.new_order_article(rt, OrderArticle(article_id=5, amount=1))

    assert oa.price == Decimal("30000.99")
    assert oa.details is None
    assert session.execute.call_count == 2


@pytest.mark.parametrize("bpid, vrtid", [(0, 4), (3, 0), (0, 0)])
def test_line_requires_price_selection(rt, session, bpid, vrtid):
    with rt:
        session.execute.side_effect = [article_row(), one((True, True))]
        with pytest.raises(InvalidArgumentError) as exc_info:
            orders.new_order_article(rt, OrderArticle(article_id=5, amount=1, base_price_id=bpid, variant_id=vrtid))
    assert exc_info.value.message == "Article ID 5 missing BasePrice or Variant ID"
    assert session.execute.call_count == 2


def test_line_for_unknown_article(rt, session):
    missing = MagicMock()
    missing.one.side_effect = NoResultFound("No row was found")
    with rt:
        session.execute.side_effect = [missing]
        with pytest.raises(NotFoundError) as exc_info:
            orders.new_order_article(rt, OrderArticle(article_id=5, amount=1))
    assert exc_info.value.message == "Article with ID 5 not found"


def test_foreign_base_price_or_variant(rt, session):
    missing = MagicMock()
    missing.one.side_effect = NoResultFound("No row was found")
    with rt:
        session.execute.side_effect = [article_row(), one((True, True)), missing]
        with pytest.raises(NotFoundError) as exc_info:
            orders.new_order_article(rt, OrderArticle(article_id=5, amount=1, base_price_id=3, variant_id=4))
    assert exc_info.value.message == "BasePrice and/or Variant for Article ID 5"


def test_delete_article_counts_every_row(rt, session):
    # category link, base price link, video, two images, variant, article
    with rt:
        session.execute.side_effect = [rows(1), rows(1), rows(1), rows(2), rows(1), rows(1)]
        assert articles.delete_article(rt, 5) == 7


def test_delete_unknown_article(rt, session):
    with rt:
        session.execute.side_effect = [rows(0)] * 6
        assert articles.delete_article(rt, 5) == 0


def test_images_replaced_in_submission_order(rt, session):
    session.execute.return_value = rows(3)
    with rt:
        articles.update_images(rt, 5, [Media(id=9, label="c", url="c.jpg"), Media(label="a", url="a.jpg")])

    cleanup, *inserts = [call.args[0] for call in session.execute.call_args_list]
    assert str(cleanup).startswith("DELETE FROM shop.images")
    assert [stmt.compile().params for stmt in inserts] == [
        {"id": 9, "article_id": 5, "position": 1, "label": "c", "url": "c.jpg"},
        {"article_id": 5, "position": 2, "label": "a", "url": "a.jpg"},
    ]


def test_images_invalid_before_cleanup(rt, session):
    with rt:
        with pytest.raises(InvalidArgumentError):
            articles.update_images(rt, 5, [Media(label="a", url="a.jpg"), Media(label="no url")])
    session.execute.assert_not_called()
