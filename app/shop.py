"""Public shop operations.

Every operation runs in exactly one `RequestTx`. Writes commit as their last
step, so any failure before that leaves the database untouched. Privileged
operations verify the caller's token before a session is opened.
"""

from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.auth import ERR_MISSING_TOKEN, TokenVerifier
from app.core.config import Settings
from app.core.context import RequestContext
from app.core.errors import InvalidArgumentError, ShopError, UnauthenticatedError
from app.core.logging import get_logger
from app.core.mail import Mailer
from app.core.payment import PaymentGateway
from app.core.transaction import RequestTx
from app.modules.articles import service as articles
from app.modules.articles.builder import QueryConfig
from app.modules.articles.schemas import Article, Deleted, ListConditions, SuggestionList
from app.modules.base_prices import service as base_prices
from app.modules.base_prices.schemas import BasePrice
from app.modules.categories import service as categories
from app.modules.categories.schemas import Category
from app.modules.messages import service as messages
from app.modules.messages.schemas import Message, MessageID
from app.modules.orders import service as orders
from app.modules.orders.schemas import Order, OrderID, OrderStatus

ERR_MISSING_ID = "Missing ID"


class ShopServer:
    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[], Session],
        verifier: TokenVerifier,
        mailer: Mailer,
        gateway: PaymentGateway,
        query_config: Optional[QueryConfig] = None,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.verifier = verifier
        self.mailer = mailer
        self.gateway = gateway
        self.query_config = query_config or QueryConfig(default_limit=settings.list_limit, debug=settings.debug)
        self.log = get_logger("shop")

    def new_tx(self, ctx: RequestContext, method: str, read_only: bool = False) -> RequestTx:
        return RequestTx(self.session_factory, ctx, self.log.with_fields(method=method), read_only=read_only)

    def new_auth_tx(self, ctx: RequestContext, method: str, token: str, read_only: bool = False) -> RequestTx:
        """Like `new_tx`, for operations restricted to the groups in `method_groups`."""
        log = self.log.with_fields(method=method)
        if not token:
            log.warning(ERR_MISSING_TOKEN)
            raise UnauthenticatedError(ERR_MISSING_TOKEN)

        try:
            principal = self.verifier.verify(token, self.settings.method_groups.get(method, []))
        except ShopError as exc:
            log.warning("verify: %s", exc.message)
            raise

        return RequestTx(
            self.session_factory,
            ctx,
            log.with_fields(user=principal.subject),
            read_only=read_only,
            principal=principal,
        )

    # Articles

    def save_article(self, ctx: RequestContext, article: Article, token: str) -> int:
        """Creates or updates an article with all of its relations. Returns its id."""
        with self.new_auth_tx(ctx, "save_article", token) as rt:
            aid = articles.upsert_article(rt, article)
            articles.set_article_categories(rt, aid, article.categories)
            articles.set_article_base_prices(rt, aid, article.base_prices)
            articles.update_variants(rt, aid, article.variants)
            articles.update_images(rt, aid, article.images)
            articles.update_videos(rt, aid, article.videos)
            rt.commit()
        return aid

    def view_article(self, ctx: RequestContext, aid: int) -> Article:
        if not aid:
            raise InvalidArgumentError(ERR_MISSING_ID)
        with self.new_tx(ctx, "view_article", read_only=True) as rt:
            return articles.view_article(rt, aid)

    def list_articles(self, ctx: RequestContext, cond: ListConditions) -> list[Article]:
        with self.new_tx(ctx, "list_articles", read_only=True) as rt:
            return articles.list_articles(rt, cond, self.settings.db_schema, self.query_config)

    def delete_article(self, ctx: RequestContext, aid: int, token: str) -> Deleted:
        with self.new_auth_tx(ctx, "delete_article", token) as rt:
            if not aid:
                raise InvalidArgumentError(ERR_MISSING_ID)
            rows = articles.delete_article(rt, aid)
            rt.commit()
        return Deleted(rows=rows)

    def search_articles(self, ctx: RequestContext, text: str) -> list[Article]:
        with self.new_tx(ctx, "search_articles", read_only=True) as rt:
            return articles.search_articles(rt, text, self.settings.search_language)

    def suggest(self, ctx: RequestContext, text: str) -> SuggestionList:
        with self.new_tx(ctx, "suggest", read_only=True) as rt:
            return articles.suggest(rt, text, self.settings.search_language)

    # Orders

    def checkout(self, ctx: RequestContext, order: Order) -> OrderID:
        """Places an order, mails it and prepares the card payment redirect.

        The order is committed only once the mail went out and the payment
        payload was built.
        """
        with self.new_tx(ctx, "checkout") as rt:
            stored = orders.new_order(rt, order)
            subject = f"New order #{stored.id} at {self.settings.shop_name}"
            msg = orders.send_order_mail(rt, self.mailer, self.settings, stored, subject)
            data, env_key = orders.encrypt_order(rt, self.gateway, self.settings, msg)
            rt.commit()
        return OrderID(id=stored.id, env_key=env_key, data=data)

    def list_orders(self, ctx: RequestContext, status: Optional[OrderStatus], token: str) -> list[Order]:
        with self.new_auth_tx(ctx, "list_orders", token, read_only=True) as rt:
            return orders.list_orders(rt, status)

    def save_order(self, ctx: RequestContext, order: Order, token: str) -> OrderID:
        with self.new_auth_tx(ctx, "save_order", token) as rt:
            stored = orders.save_order(rt, order)
            subject = f"Update on your order #{stored.id} at {self.settings.shop_name}"
            orders.send_order_mail(rt, self.mailer, self.settings, stored, subject)
            rt.commit()
        return OrderID(id=stored.id)

    # Categories

    def save_categories(self, ctx: RequestContext, cats: Sequence[Category], token: str) -> list[Category]:
        """Saves the categories in the given order and returns the full list."""
        with self.new_auth_tx(ctx, "save_categories", token) as rt:
            categories.save_categories(rt, cats)
            saved = categories.list_categories(rt)
            rt.commit()
        return saved

    def list_categories(self, ctx: RequestContext, only_published_articles: bool = False) -> list[Category]:
        with self.new_tx(ctx, "list_categories", read_only=True) as rt:
            return categories.list_categories(rt, only_published_articles)

    # Base prices

    def save_base_price(self, ctx: RequestContext, bp: BasePrice, token: str) -> BasePrice:
        with self.new_auth_tx(ctx, "save_base_price", token) as rt:
            saved = base_prices.upsert_base_price(rt, bp)
            rt.commit()
        return saved

    def delete_base_price(self, ctx: RequestContext, bpid: int, token: str) -> Deleted:
        with self.new_auth_tx(ctx, "delete_base_price", token) as rt:
            rows = base_prices.delete_base_price(rt, bpid)
            rt.commit()
        return Deleted(rows=rows)

    def list_base_prices(self, ctx: RequestContext) -> list[BasePrice]:
        with self.new_tx(ctx, "list_base_prices", read_only=True) as rt:
            return base_prices.list_base_prices(rt)

    # Messages

    def send_message(self, ctx: RequestContext, message: Message) -> MessageID:
        with self.new_tx(ctx, "send_message") as rt:
            mid = messages.new_message(rt, message)
            messages.send_mail(
                rt,
                self.mailer,
                mid,
                message,
                self.settings.mail_from,
                self.settings.mail_to,
                self.settings.shop_name,
            )
            rt.commit()
        return MessageID(id=mid)
