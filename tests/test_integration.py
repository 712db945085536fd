"""End-to-end operations against PostgreSQL.

Set SHOP_TEST_DATABASE_URL to a disposable database to run these; every
test recreates the `shop` schema tables.
"""

import os
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select, text

from app.core.database import SCHEMA, Base, make_sessionmaker
from app.core.errors import InvalidArgumentError, NotFoundError
from app.modules.articles import models as article_models
from app.modules.articles.fields import ALL, ArticleField
from app.modules.articles.schemas import Article, ArticleRelations, ListConditions, Media, Variant
from app.modules.base_prices.schemas import BasePrice
from app.modules.categories.schemas import Category
from app.modules.messages import models as message_models  # noqa: F401
from app.modules.messages.schemas import Message
from app.modules.orders import models as order_models  # noqa: F401
from app.modules.orders.schemas import Order, OrderArticle, OrderStatus, PaymentMethod
from app.shop import ShopServer

DATABASE_URL = os.environ.get("SHOP_TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not DATABASE_URL, reason="SHOP_TEST_DATABASE_URL not set")

TOKEN = "good"


@pytest.fixture(scope="module")
def engine():
    engine = create_engine(DATABASE_URL)
    with engine.begin() as conn:
        conn.execute(text(f"create schema if not exists {SCHEMA}"))
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    return make_sessionmaker(engine)


@pytest.fixture
def shop(settings, db, verifier, mailer, gateway):
    return ShopServer(settings, db, verifier, mailer, gateway)


def new_article(**kwargs):
    values = dict(title="Masa", description="Masa din lemn", price="30000.99", published=True)
    values.update(kwargs)
    return Article(**values)


def test_save_and_view_article(shop, ctx):
    [cat] = shop.save_categories(ctx, [Category(label="mobila")], TOKEN)
    bp = shop.save_base_price(ctx, BasePrice(label="stejar", price="148.3515"), TOKEN)

    aid = shop.save_article(ctx, new_article(
        categories=[cat],
        base_prices=[bp],
        variants=[Variant(labels=["mare", "rosu"], multiplier="1.25")],
        images=[Media(label="fata", url="a.jpg"), Media(label="spate", url="b.jpg")],
        videos=[Media(label="clip", url="v.mp4")],
    ), TOKEN)

    art = shop.view_article(ctx, aid)
    assert art.title == "Masa"
    assert art.price == "30000.99"
    assert [img.url for img in art.images] == ["a.jpg", "b.jpg"]
    assert [c.label for c in art.categories] == ["mobila"]
    assert art.base_prices[0].price == "148.3515"
    assert art.variants[0].labels == ["mare", "rosu"]
    assert art.variants[0].multiplier == "1.25"


def test_view_missing_article(shop, ctx):
    with pytest.raises(NotFoundError) as exc_info:
        shop.view_article(ctx, 404)
    assert exc_info.value.message == "Article 404 not found"


def test_list_round_trip(shop, ctx):
    [cat] = shop.save_categories(ctx, [Category(label="spanac")], TOKEN)
    aid = shop.save_article(ctx, new_article(
        price="0.1000000000000000000001",
        categories=[cat],
        images=[Media(label="l", url="u")],
        variants=[Variant(labels=["x"], multiplier="2.50")],
    ), TOKEN)
    shop.save_article(ctx, new_article(title="Ascuns", published=False, categories=[cat]), TOKEN)

    arts = shop.list_articles(ctx, ListConditions(
        fields=[ALL],
        relations=ArticleRelations(images=ALL, videos=ALL, categories=ALL, base_prices=ALL, variants=ALL),
        only_published=True,
        only_category_label="spanac",
    ))
    assert [a.id for a in arts] == [aid]
    art = arts[0]
    assert art.price == "0.1000000000000000000001"
    assert art.images == [Media(id=art.images[0].id, label="l", url="u")]
    assert art.variants[0].multiplier == "2.50"
    assert art.videos == []
    assert art.categories[0].label == "spanac"
    assert art.created_at is not None


def test_list_defaults_and_limits(shop, ctx):
    for i in range(3):
        shop.save_article(ctx, new_article(title=f"a{i}"), TOKEN)

    arts = shop.list_articles(ctx, ListConditions(limit=2, offset=1))
    assert len(arts) == 2
    assert set(arts[0].model_fields_set) >= {"id", "title", "price", "promoted", "images"}
    assert "description" not in arts[0].model_fields_set

    assert shop.list_articles(ctx, ListConditions(only_category_id=999)) == []
    assert len(shop.list_articles(ctx, ListConditions(fields=[ArticleField.TITLE], limit=0))) == 3


def test_images_are_replaced_on_save(shop, ctx, db):
    a, b, c = Media(label="a", url="a"), Media(label="b", url="b"), Media(label="c", url="c")
    aid = shop.save_article(ctx, new_article(images=[a, b, c]), TOKEN)
    saved = {img.url: img for img in shop.view_article(ctx, aid).images}

    shop.save_article(ctx, new_article(id=aid, images=[saved["c"], saved["a"]]), TOKEN)

    with db() as session:
        rows = session.execute(
            select(article_models.Image.url, article_models.Image.position)
            .where(article_models.Image.article_id == aid)
        ).all()
    assert dict(rows) == {"c": 1, "a": 2}


def test_failed_save_leaves_nothing(shop, ctx):
    with pytest.raises(InvalidArgumentError):
        shop.save_article(ctx, new_article(images=[Media(label="no url")]), TOKEN)
    assert shop.list_articles(ctx, ListConditions()) == []


def test_delete_article(shop, ctx):
    [cat] = shop.save_categories(ctx, [Category(label="c")], TOKEN)
    bp = shop.save_base_price(ctx, BasePrice(label="bp", price="1"), TOKEN)
    aid = shop.save_article(ctx, new_article(
        categories=[cat],
        base_prices=[bp],
        variants=[Variant(labels=["v"], multiplier="1")],
        images=[Media(label="1", url="1"), Media(label="2", url="2")],
        videos=[Media(label="v", url="v")],
    ), TOKEN)

    assert shop.delete_article(ctx, aid, TOKEN).rows == 7
    assert shop.delete_article(ctx, aid, TOKEN).rows == 0
    with pytest.raises(NotFoundError):
        shop.view_article(ctx, aid)


def test_categories(shop, ctx):
    saved = shop.save_categories(ctx, [Category(label="b"), Category(label="a")], TOKEN)
    assert [c.label for c in saved] == ["b", "a"]

    reordered = shop.save_categories(ctx, [saved[1], Category(id=saved[0].id, label="b2")], TOKEN)
    assert [(c.id, c.label) for c in reordered] == [(saved[1].id, "a"), (saved[0].id, "b2")]

    shop.save_article(ctx, new_article(categories=[saved[1]]), TOKEN)
    shop.save_article(ctx, new_article(published=False, categories=[saved[0]]), TOKEN)
    assert [c.label for c in shop.list_categories(ctx, only_published_articles=True)] == ["a"]


def test_base_prices(shop, ctx):
    bp = shop.save_base_price(ctx, BasePrice(label="pin", price="10.50"), TOKEN)
    assert bp.id and bp.created_at

    updated = shop.save_base_price(ctx, BasePrice(id=bp.id, label="pin", price="11"), TOKEN)
    assert (updated.id, updated.price) == (bp.id, "11")
    assert updated.created_at == bp.created_at

    shop.save_article(ctx, new_article(base_prices=[bp]), TOKEN)
    assert [b.label for b in shop.list_base_prices(ctx)] == ["pin"]
    assert shop.delete_base_price(ctx, bp.id, TOKEN).rows == 2
    assert shop.list_base_prices(ctx) == []


def test_checkout(shop, ctx, mailer, gateway):
    bp = shop.save_base_price(ctx, BasePrice(label="stejar", price="148.3515"), TOKEN)
    plain = shop.save_article(ctx, new_article(price="30000.99"), TOKEN)
    cheap = shop.save_article(ctx, new_article(title="Scaun", price="12.12"), TOKEN)
    priced = shop.save_article(ctx, new_article(
        title="Dulap",
        price="1",
        base_prices=[bp],
        variants=[Variant(labels=["standard"], multiplier="1")],
    ), TOKEN)
    variant_id = shop.view_article(ctx, priced).variants[0].id

    order = Order(
        full_name="Popescu Ion Mihai",
        email="ion@example.com",
        phone="0700",
        full_address="Str. Lunga 1",
        payment_method=PaymentMethod.CARD,
        articles=[
            OrderArticle(article_id=plain, amount=1),
            OrderArticle(article_id=cheap, amount=3),
            OrderArticle(article_id=priced, amount=5, base_price_id=bp.id, variant_id=variant_id),
        ],
    )
    oid = shop.checkout(ctx, order)
    assert oid.data == f"data-{oid.id}"

    (req,) = gateway.requests
    assert req.amount == "30779.1075"
    assert (req.first_name, req.last_name) == ("Ion Mihai", "Popescu")

    (mail,) = mailer.sent
    assert mail["headers"]["Subject"] == [f"New order #{oid.id} at Test Shop"]
    assert mail["to"] == ["owner@example.com", "ion@example.com"]
    assert mail["data"]["sum"] == "30779.1075"

    [stored] = shop.list_orders(ctx, OrderStatus.OPEN, TOKEN)
    assert stored.sum == "30779.1075"
    assert [line.price for line in stored.articles] == ["30000.99", "12.12", "148.3515"]
    assert stored.articles[2].details.base_price.label == "stejar"
    assert stored.articles[0].details is None


def test_checkout_requires_price_selection(shop, ctx, mailer):
    bp = shop.save_base_price(ctx, BasePrice(label="stejar", price="2"), TOKEN)
    aid = shop.save_article(ctx, new_article(base_prices=[bp], variants=[Variant(labels=["v"], multiplier="3")]), TOKEN)

    order = Order(full_name="A B", email="a@b", phone="1", full_address="x", articles=[OrderArticle(article_id=aid, amount=1)])
    with pytest.raises(InvalidArgumentError) as exc_info:
        shop.checkout(ctx, order)
    assert exc_info.value.message == f"Article ID {aid} missing BasePrice or Variant ID"

    order.articles = [OrderArticle(article_id=aid, amount=1, base_price_id=bp.id, variant_id=999999)]
    with pytest.raises(NotFoundError):
        shop.checkout(ctx, order)

    order.articles = [OrderArticle(article_id=123456, amount=1)]
    with pytest.raises(NotFoundError) as exc_info:
        shop.checkout(ctx, order)
    assert exc_info.value.message == "Article with ID 123456 not found"

    assert mailer.sent == []
    assert shop.list_orders(ctx, None, TOKEN) == []


def test_save_order(shop, ctx, mailer):
    aid = shop.save_article(ctx, new_article(price="5"), TOKEN)
    oid = shop.checkout(ctx, Order(
        full_name="A B", email="a@b", phone="1", full_address="x",
        articles=[OrderArticle(article_id=aid, amount=2)],
    ))

    order = shop.list_orders(ctx, None, TOKEN)[0]
    order.status = OrderStatus.SENT
    assert shop.save_order(ctx, order, TOKEN).id == oid.id
    assert mailer.sent[-1]["headers"]["Subject"] == [f"Update on your order #{oid.id} at Test Shop"]

    [sent] = shop.list_orders(ctx, OrderStatus.SENT, TOKEN)
    assert sent.sum == "10"
    assert shop.list_orders(ctx, OrderStatus.OPEN, TOKEN) == []

    order.id = 424242
    with pytest.raises(NotFoundError):
        shop.save_order(ctx, order, TOKEN)


def test_search_and_suggest(shop, ctx):
    [cat] = shop.save_categories(ctx, [Category(label="Bucatarie")], TOKEN)
    aid = shop.save_article(ctx, new_article(title="Masa extensibila", images=[Media(label="l", url="u")]), TOKEN)

    found = shop.search_articles(ctx, "masa")
    assert [a.id for a in found] == [aid]
    assert found[0].images[0].url == "u"

    suggestions = shop.suggest(ctx, "buca")
    assert [c.id for c in suggestions.categories] == [cat.id]
    assert shop.suggest(ctx, "exten").articles[0].id == aid


def test_send_message(shop, ctx, mailer, db):
    mid = shop.send_message(ctx, Message(name="Ana", email="ana@example.com", subject="Salut", message="Buna"))
    assert mailer.sent[0]["headers"]["Subject"] == [f"Test Shop: message #{mid.id}: Salut"]
    with db() as session:
        assert session.get(message_models.Message, mid.id).name == "Ana"


def test_decimal_sum_is_exact(shop, ctx):
    aid = shop.save_article(ctx, new_article(price="0.3333333333333333333333333333333"), TOKEN)
    shop.checkout(ctx, Order(
        full_name="A B", email="a@b", phone="1", full_address="x",
        articles=[OrderArticle(article_id=aid, amount=3)],
    ))
    [order] = shop.list_orders(ctx, None, TOKEN)
    assert Decimal(order.sum) == Decimal("0.9999999999999999999999999999999")
