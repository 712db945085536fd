from typing import Optional

from sqlalchemy import create_engine

from app.core.auth import JWTVerifier
from app.core.config import Settings, get_settings
from app.core.database import get_sessionmaker, make_sessionmaker
from app.core.logging import setup_logging
from app.core.mail import SmtpMailer
from app.core.payment import NullPaymentGateway, PaymentGateway
from app.modules.articles.builder import QueryConfig
from app.shop import ShopServer


def create_shop_server(settings: Optional[Settings] = None, gateway: Optional[PaymentGateway] = None) -> ShopServer:
    """Wires the shop from settings. The transport owns the returned server."""
    if settings is None:
        settings = get_settings()
        session_factory = get_sessionmaker()
    else:
        engine = create_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True)
        session_factory = make_sessionmaker(engine)
    setup_logging(settings.log_level)

    return ShopServer(
        settings=settings,
        session_factory=session_factory,
        verifier=JWTVerifier(settings.clerk_jwks_url, settings.jwt_audiences),
        mailer=SmtpMailer(
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_username,
            settings.smtp_password,
            settings.mail_template_dir,
        ),
        gateway=gateway or NullPaymentGateway(),
        query_config=QueryConfig(default_limit=settings.list_limit, debug=settings.debug),
    )
